"""Thread-safe per-session throttle for LLM calls.

Design decisions
────────────────
• One instance per application, created in the FastAPI lifespan and
  injected into the :class:`ReplyGenerator`; nothing lives at module level.
• **Minimum interval** between two calls of the same session and a hard
  **call cap** per session.
• Idle sessions are purged lazily on every check instead of by a timer
  thread.
• **threading.Lock** because replies are generated on worker threads.

Usage
─────
>>> limiter = SessionRateLimiter(min_interval=2.0, max_calls=10)
>>> limiter.check("abc123")
RateLimitDecision(allowed=True, delay=0.0)
>>> limiter.check("abc123")          # immediately again
RateLimitDecision(allowed=False, delay=2.0)
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_MIN_INTERVAL_SECONDS = 2.0
DEFAULT_MAX_CALLS = 10
DEFAULT_IDLE_SECONDS = 300.0


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a throttle check.

    ``delay`` is only meaningful when ``allowed`` is ``False``: a positive
    value means "try again after this many seconds", zero means the session
    is blocked for good.
    """

    allowed: bool
    delay: float = 0.0


@dataclass
class _SessionUsage:
    last_call: float
    call_count: int


class SessionRateLimiter:
    """Per-session minimum-interval and call-count limiter."""

    def __init__(
        self,
        min_interval: float = DEFAULT_MIN_INTERVAL_SECONDS,
        max_calls: int = DEFAULT_MAX_CALLS,
        idle_seconds: float = DEFAULT_IDLE_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._min_interval = min_interval
        self._max_calls = max_calls
        self._idle_seconds = idle_seconds
        self._clock = clock
        self._sessions: dict[str, _SessionUsage] = {}
        self._lock = threading.Lock()

    # ── Core operations ──────────────────────────────────────────────

    def check(self, session_id: str) -> RateLimitDecision:
        """Record a call attempt for *session_id* if it is allowed."""
        now = self._clock()
        with self._lock:
            self._purge_idle(now)

            usage = self._sessions.get(session_id)
            if usage is None:
                self._sessions[session_id] = _SessionUsage(last_call=now, call_count=1)
                return RateLimitDecision(allowed=True)

            if usage.call_count >= self._max_calls:
                logger.info(
                    "Session %s has exceeded maximum LLM calls (%d)",
                    session_id, self._max_calls,
                )
                return RateLimitDecision(allowed=False)

            elapsed = now - usage.last_call
            if elapsed < self._min_interval:
                return RateLimitDecision(allowed=False, delay=self._min_interval - elapsed)

            usage.last_call = now
            usage.call_count += 1
            return RateLimitDecision(allowed=True)

    def reset(self, session_id: str) -> bool:
        """Forget a session.  Returns ``True`` if it was tracked."""
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    # ── Introspection ────────────────────────────────────────────────

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    def call_count(self, session_id: str) -> int:
        usage = self._sessions.get(session_id)
        return usage.call_count if usage else 0

    # ── Internal ─────────────────────────────────────────────────────

    def _purge_idle(self, now: float) -> None:
        """Drop sessions whose last call is older than the idle window.

        Caller must hold ``self._lock``.
        """
        stale = [
            sid for sid, usage in self._sessions.items()
            if now - usage.last_call > self._idle_seconds
        ]
        for sid in stale:
            del self._sessions[sid]
        if stale:
            logger.debug("Rate limiter: purged %d idle sessions", len(stale))
