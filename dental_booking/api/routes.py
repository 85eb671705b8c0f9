"""FastAPI route definitions for the booking assistant API."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Request

from dental_booking.api.schemas import BookingState, ChatRequest, ChatResponse, HealthResponse
from dental_booking.prompts import TECHNICAL_DIFFICULTIES

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_assistant(request: Request):
    """Retrieve the booking assistant created during the FastAPI lifespan."""
    assistant = getattr(request.app.state, "assistant", None)
    if assistant is None:
        raise HTTPException(
            status_code=503,
            detail="The assistant is still starting up. Please try again in a moment.",
        )
    return assistant


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse()


@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, http_request: Request):
    """Answer the latest user message of a booking conversation.

    The widget sends the whole transcript on every call; the booking state
    is recomputed from it, so no server-side session is needed.  The LLM
    call and the SMTP notification block, so the turn runs in a worker
    thread via ``asyncio.to_thread``.
    """
    assistant = _get_assistant(http_request)
    request_id = getattr(http_request.state, "request_id", "?")
    messages = [m.model_dump() for m in request.messages]

    try:
        turn = await asyncio.to_thread(assistant.respond, messages, request.session_id)
    except Exception as e:
        # Full traceback stays in the server log only
        logger.exception("[%s] Error processing chat request", request_id)
        raise HTTPException(status_code=500, detail=TECHNICAL_DIFFICULTIES) from e

    logger.info(
        "[%s] session=%s step=%d email_sent=%s llm=%s",
        request_id, turn.session_id, turn.booking_state.step,
        turn.email_sent, turn.api_call_successful,
    )
    return ChatResponse(
        reply=turn.reply,
        booking_state=BookingState(**turn.booking_state.to_dict()),
        email_sent=turn.email_sent,
        api_call_successful=turn.api_call_successful,
        session_id=turn.session_id,
        quick_replies=turn.quick_replies,
        input_placeholder=turn.input_placeholder,
    )
