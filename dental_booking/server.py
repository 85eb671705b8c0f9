"""FastAPI server for the Dr. Smile booking assistant.

Run with:
    uv run uvicorn dental_booking.server:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from dental_booking.api.routes import router
from dental_booking.assistant import create_booking_assistant
from dental_booking.config import (
    CLINIC_NAME,
    CORS_ORIGINS,
    RATE_LIMIT_IDLE_SECONDS,
    RATE_LIMIT_MAX_CALLS,
    RATE_LIMIT_MIN_INTERVAL_SECONDS,
    SERVER_HOST,
    SERVER_PORT,
)
from dental_booking.services.metrics import metrics
from dental_booking.services.rate_limit import SessionRateLimiter

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: initialise / tear-down shared resources ────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Create the per-process rate limiter and the assistant using it.

    Both live on ``app.state`` so that the per-session counters are scoped
    to this application instance.
    """
    application.state.rate_limiter = SessionRateLimiter(
        min_interval=RATE_LIMIT_MIN_INTERVAL_SECONDS,
        max_calls=RATE_LIMIT_MAX_CALLS,
        idle_seconds=RATE_LIMIT_IDLE_SECONDS,
    )
    application.state.assistant = create_booking_assistant(
        rate_limiter=application.state.rate_limiter,
    )
    logger.info("Booking assistant ready.")
    yield
    metrics.flush()


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title=f"{CLINIC_NAME} Booking Assistant",
    description="Chat assistant that collects dental appointment requests.",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS (the chat widget is served from another origin) ─────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Attach a request ID to every request and echo it in ``X-Request-ID``."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info("[%s] %s %s", request_id, request.method, request.url.path)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ── Register routes ──────────────────────────────────────────────────
app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": f"{CLINIC_NAME} Booking Assistant",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health",
        "chat": "/api/chat",
    }


if __name__ == "__main__":
    logger.info("Starting booking assistant on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run(
        "dental_booking.server:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=True,
    )
