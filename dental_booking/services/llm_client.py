"""LLM reply generation with per-session throttling and retry logic.

Replies are written by Claude through LangChain's ``ChatAnthropic``.  The
SDK's own retries are disabled so that this module owns the policy:

* a per-session throttle (:class:`SessionRateLimiter`) is consulted before
  every reply;
* HTTP 429 responses wait for ``Retry-After`` when the API sends one;
* connection errors, timeouts and 5xx responses back off exponentially;
* any other 4xx is not retried.

Every failure surfaces as a :class:`ReplyGenerationError` so the caller can
switch to the scripted replies.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from typing import Any

import anthropic
from langchain_anthropic import ChatAnthropic
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from dental_booking.booking import BookingRecord, iter_messages
from dental_booking.config import ANTHROPIC_API_KEY, LLM_MAX_TOKENS, LLM_TEMPERATURE, MODEL_NAME
from dental_booking.prompts import get_system_prompt
from dental_booking.services.metrics import metrics
from dental_booking.services.rate_limit import SessionRateLimiter

logger = logging.getLogger(__name__)

# ── Retry configuration ─────────────────────────────────────────────
MAX_RETRIES = 3
INITIAL_BACKOFF_SECONDS = 2.0


class ReplyGenerationError(Exception):
    """Raised when no LLM reply could be produced."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class LLMUnavailableError(ReplyGenerationError):
    """No API key is configured, so the LLM is never called."""


class RateLimitExceededError(ReplyGenerationError):
    """The session is throttled by the per-session rate limiter."""


def _backoff(attempt: int) -> float:
    return INITIAL_BACKOFF_SECONDS * (2 ** (attempt - 1))


def _retry_after_seconds(exc: anthropic.APIStatusError) -> float | None:
    """Parse the ``Retry-After`` header (delta-seconds form only)."""
    value = exc.response.headers.get("retry-after")
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None


def build_llm_messages(state: BookingRecord, messages: Iterable[Any]) -> list[BaseMessage]:
    """Turn the widget transcript into LangChain messages.

    The system prompt comes first.  System turns sent by the client are
    dropped, as are assistant turns before the first user turn (the API
    expects the conversation to open with the user).
    """
    history: list[BaseMessage] = []
    for role, content in iter_messages(messages):
        if not content:
            continue
        if role == "user":
            history.append(HumanMessage(content=content))
        elif role == "assistant" and history:
            history.append(AIMessage(content=content))
    return [SystemMessage(content=get_system_prompt(state))] + history


def _response_text(response: Any) -> str:
    content = getattr(response, "content", "")
    if isinstance(content, str):
        return content.strip()
    parts = [
        block.get("text", "") if isinstance(block, dict) else str(block)
        for block in content or []
    ]
    return "".join(parts).strip()


class ReplyGenerator:
    """Produce conversational replies for the booking chat."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        *,
        rate_limiter: SessionRateLimiter | None = None,
        llm: Any | None = None,
    ):
        self._api_key = ANTHROPIC_API_KEY if api_key is None else api_key
        self._model = model or MODEL_NAME
        self._rate_limiter = rate_limiter or SessionRateLimiter()
        # Built lazily on first use (injectable for tests)
        self._llm = llm

    @property
    def enabled(self) -> bool:
        return self._llm is not None or bool(self._api_key)

    def _get_llm(self):
        if self._llm is None:
            self._llm = ChatAnthropic(
                model=self._model,
                api_key=self._api_key,
                temperature=LLM_TEMPERATURE,
                max_tokens=LLM_MAX_TOKENS,
                max_retries=0,
            )
        return self._llm

    # ── Public API ───────────────────────────────────────────────────

    def generate(
        self,
        state: BookingRecord,
        messages: Iterable[Any],
        session_id: str,
    ) -> str:
        """Return the LLM's reply text (may be empty).

        Raises:
            LLMUnavailableError: no API key is configured.
            RateLimitExceededError: the session is throttled.
            ReplyGenerationError: the API failed after all retries.
        """
        if not self.enabled:
            raise LLMUnavailableError("No LLM API key configured")

        self._acquire_slot(session_id)
        prompt = build_llm_messages(state, messages)
        response = self._invoke_with_retry(prompt, session_id)
        return _response_text(response)

    # ── Internal helpers ─────────────────────────────────────────────

    def _acquire_slot(self, session_id: str) -> None:
        decision = self._rate_limiter.check(session_id)
        if decision.allowed:
            return

        if decision.delay > 0:
            logger.info(
                "Session %s: throttled, waiting %.1fs before LLM call",
                session_id, decision.delay,
            )
            time.sleep(decision.delay)
            if self._rate_limiter.check(session_id).allowed:
                return
            raise RateLimitExceededError("Rate limit exceeded for this session", status_code=429)

        raise RateLimitExceededError("Session has exceeded maximum LLM calls", status_code=429)

    def _invoke_with_retry(self, prompt: list[BaseMessage], session_id: str):
        llm = self._get_llm()
        last_error: Exception | None = None

        for attempt in range(1, MAX_RETRIES + 1):
            logger.debug("Session %s: LLM attempt %d/%d", session_id, attempt, MAX_RETRIES)
            t0 = time.perf_counter()
            try:
                response = llm.invoke(prompt)
                elapsed = (time.perf_counter() - t0) * 1000
                metrics.record_success("anthropic", "chat_reply", latency_ms=elapsed)
                logger.info("Session %s: LLM replied in %.0fms", session_id, elapsed)
                return response

            except anthropic.RateLimitError as exc:
                self._record_failure(exc, t0)
                last_error = exc
                delay = _retry_after_seconds(exc)
                if delay is None:
                    delay = _backoff(attempt)
                logger.warning(
                    "Session %s: rate limited by API on attempt %d/%d (wait %.1fs)",
                    session_id, attempt, MAX_RETRIES, delay,
                )

            except anthropic.APIConnectionError as exc:
                self._record_failure(exc, t0)
                last_error = exc
                delay = _backoff(attempt)
                logger.warning(
                    "Session %s: LLM attempt %d/%d failed (%s)",
                    session_id, attempt, MAX_RETRIES, type(exc).__name__,
                )

            except anthropic.APIStatusError as exc:
                self._record_failure(exc, t0)
                if exc.status_code < 500:
                    raise ReplyGenerationError(
                        f"LLM request rejected with status {exc.status_code}",
                        status_code=exc.status_code,
                    ) from exc
                last_error = exc
                delay = _backoff(attempt)
                logger.warning(
                    "Session %s: LLM server error %d on attempt %d/%d",
                    session_id, exc.status_code, attempt, MAX_RETRIES,
                )

            except Exception as exc:
                self._record_failure(exc, t0)
                raise ReplyGenerationError(f"LLM call failed: {exc}") from exc

            if attempt < MAX_RETRIES:
                time.sleep(delay)

        raise ReplyGenerationError(
            f"LLM request failed after {MAX_RETRIES} attempts: {last_error}",
            status_code=getattr(last_error, "status_code", None),
        ) from last_error

    @staticmethod
    def _record_failure(exc: Exception, t0: float) -> None:
        metrics.record_failure(
            "anthropic", "chat_reply",
            error_type=type(exc).__name__,
            latency_ms=(time.perf_counter() - t0) * 1000,
        )
