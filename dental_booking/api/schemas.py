"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """One turn of the transcript held by the chat widget."""

    role: Literal["user", "assistant", "system"]
    content: str = Field(..., max_length=2000)


class ChatRequest(BaseModel):
    """The full conversation so far, newest user turn last."""

    messages: list[ChatMessage] = Field(..., min_length=1, max_length=200)
    session_id: str | None = Field(
        default=None,
        min_length=1,
        max_length=100,
        description="Session identifier from an earlier response; a new one is issued when omitted",
    )


class BookingState(BaseModel):
    step: int
    patient_name: str = ""
    phone_number: str = ""
    email: str = ""
    service_type: str = ""
    preferred_date: str = ""
    preferred_time: str = ""
    urgency: str = "routine"
    additional_notes: str = ""
    is_complete: bool = False


class ChatResponse(BaseModel):
    """Assistant reply plus the booking state it was based on."""

    reply: str = Field(..., description="The assistant's response message")
    booking_state: BookingState
    email_sent: bool = False
    api_call_successful: bool = False
    session_id: str
    quick_replies: list[str] = Field(default_factory=list)
    input_placeholder: str = ""


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "dental-booking-assistant"
