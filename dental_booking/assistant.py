"""One chat turn of the Dr. Smile booking assistant.

Flow for every request (the client always sends the full transcript):

    transcript → extract_booking_state → LLM reply (or scripted fallback)
               → progress indicator → (confirmed?) staff email → BookingTurn

The assistant itself holds no conversation state; the only per-session data
is the throttle inside the injected :class:`ReplyGenerator`.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from dental_booking.booking import (
    COMPLETE_STEP,
    BookingRecord,
    extract_booking_state,
    iter_messages,
)
from dental_booking.config import (
    RATE_LIMIT_IDLE_SECONDS,
    RATE_LIMIT_MAX_CALLS,
    RATE_LIMIT_MIN_INTERVAL_SECONDS,
)
from dental_booking.prompts import (
    EMAIL_FAILED_NOTICE,
    HIGH_DEMAND_NOTICE,
    add_progress_indicator,
    get_completion_message,
    get_fallback_response,
    get_input_placeholder,
    get_quick_replies,
)
from dental_booking.services.llm_client import ReplyGenerationError, ReplyGenerator
from dental_booking.services.mailer import BookingMailer, MailerError
from dental_booking.services.metrics import metrics
from dental_booking.services.rate_limit import SessionRateLimiter

logger = logging.getLogger(__name__)


@dataclass
class BookingTurn:
    """Everything the widget needs to render one assistant reply."""

    reply: str
    booking_state: BookingRecord
    session_id: str
    email_sent: bool = False
    api_call_successful: bool = False
    quick_replies: list[str] = field(default_factory=list)
    input_placeholder: str = ""


def new_session_id() -> str:
    """Return a fresh random session id.

    Issued when the client sends none; the client is expected to echo it
    back on later turns so its calls share one throttle bucket.
    """
    return uuid.uuid4().hex[:16]


def _before_latest_user_message(messages: Sequence[Any]) -> list[Any]:
    roles = [role for role, _ in iter_messages(messages)]
    for index in range(len(roles) - 1, -1, -1):
        if roles[index] == "user":
            return list(messages[:index])
    return []


def confirmed_earlier(messages: Sequence[Any]) -> bool:
    """True if the booking was already confirmed before the latest user message."""
    previous = extract_booking_state(_before_latest_user_message(messages))
    return previous.step == COMPLETE_STEP


class BookingAssistant:
    """Stateless turn handler; collaborators are injected."""

    def __init__(
        self,
        reply_generator: ReplyGenerator | None = None,
        mailer: BookingMailer | None = None,
    ):
        self._reply_generator = reply_generator or ReplyGenerator()
        self._mailer = mailer or BookingMailer()

    def respond(self, messages: Sequence[Any], session_id: str | None = None) -> BookingTurn:
        """Produce the assistant's reply to the latest user message."""
        session_id = session_id or new_session_id()
        state = extract_booking_state(messages)
        logger.info(
            "Session %s: %d messages, step %d, complete=%s",
            session_id, len(messages), state.step, state.is_complete,
        )
        logger.debug("Session %s: booking state %s", session_id, state.to_dict())

        reply, api_ok = self._generate_reply(state, messages, session_id)
        reply = add_progress_indicator(reply, state)

        email_sent = False
        if state.is_complete and confirmed_earlier(messages):
            logger.info(
                "Session %s: booking was already confirmed; not emailing staff again",
                session_id,
            )
        elif state.is_complete:
            email_sent = self._notify_staff(state, session_id)
            if email_sent:
                reply = get_completion_message(state)
            else:
                reply += f"\n\n{EMAIL_FAILED_NOTICE}"

        return BookingTurn(
            reply=reply,
            booking_state=state,
            session_id=session_id,
            email_sent=email_sent,
            api_call_successful=api_ok,
            quick_replies=get_quick_replies(state),
            input_placeholder=get_input_placeholder(state),
        )

    def _generate_reply(
        self,
        state: BookingRecord,
        messages: Sequence[Any],
        session_id: str,
    ) -> tuple[str, bool]:
        try:
            text = self._reply_generator.generate(state, messages, session_id)
        except ReplyGenerationError as exc:
            logger.warning("Session %s: using scripted reply (%s)", session_id, exc)
            return f"{get_fallback_response(state)}\n\n{HIGH_DEMAND_NOTICE}", False
        return text or get_fallback_response(state), True

    def _notify_staff(self, state: BookingRecord, session_id: str) -> bool:
        try:
            self._mailer.send_booking(state)
        except MailerError:
            logger.exception("Session %s: failed to send booking email", session_id)
            return False
        metrics.record_booking_completed(service=state.service_type, urgency=state.urgency)
        return True


def create_booking_assistant(rate_limiter: SessionRateLimiter | None = None) -> BookingAssistant:
    """Build an assistant wired to the configured LLM and SMTP server."""
    if rate_limiter is None:
        rate_limiter = SessionRateLimiter(
            min_interval=RATE_LIMIT_MIN_INTERVAL_SECONDS,
            max_calls=RATE_LIMIT_MAX_CALLS,
            idle_seconds=RATE_LIMIT_IDLE_SECONDS,
        )
    generator = ReplyGenerator(rate_limiter=rate_limiter)
    mailer = BookingMailer()
    if not generator.enabled:
        logger.warning("No LLM API key configured; every reply will be scripted")
    if not mailer.configured:
        logger.warning("SMTP credentials not configured; booking emails will fail")
    return BookingAssistant(reply_generator=generator, mailer=mailer)
