"""CloudWatch custom metrics for the booking assistant.

Tracks every call the assistant makes to an external dependency (the
Anthropic API for replies, the SMTP server for booking notifications) and
counts completed bookings.

* Data points are buffered in memory behind a lock.
* When ``METRICS_ENABLED=true`` a daemon thread pushes the buffer to
  CloudWatch every ``FLUSH_INTERVAL_SECONDS``; otherwise the buffer is
  only logged at DEBUG level and dropped on flush.

Usage
-----
>>> from dental_booking.services.metrics import metrics
>>> metrics.record_success("anthropic", "chat_reply", latency_ms=812.5)
>>> metrics.record_failure("smtp", "send_booking", error_type="SMTPAuthenticationError")
>>> metrics.record_booking_completed(service="cleaning", urgency="routine")
"""

from __future__ import annotations

import atexit
import logging
import os
import threading
import time
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

NAMESPACE = "DentalBooking"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # CloudWatch API limit per PutMetricData call

METRIC_CALLS = "Dependency/Calls"
METRIC_LATENCY = "Dependency/Latency"
METRIC_ERRORS = "Dependency/Errors"
METRIC_BOOKINGS = "Bookings/Completed"


class MetricsClient:
    """Buffered CloudWatch publisher."""

    def __init__(self) -> None:
        self._enabled = os.getenv("METRICS_ENABLED", "false").lower() == "true"
        self._buffer: list[dict[str, Any]] = []
        self._lock = threading.Lock()
        self._cw_client = None  # lazy-init

        if self._enabled:
            self._start_flush_thread()

    def _get_cw_client(self):
        if self._cw_client is None:
            import boto3

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    # ── Public API ────────────────────────────────────────────────────

    def record_success(self, dependency: str, operation: str, latency_ms: float) -> None:
        """Record a successful dependency call and its latency."""
        self._append(METRIC_CALLS, 1, "Count", Dependency=dependency, Outcome="success")
        self._append(
            METRIC_LATENCY, latency_ms, "Milliseconds",
            Dependency=dependency, Operation=operation,
        )
        logger.debug("Metric: %s %s ok in %.1fms", dependency, operation, latency_ms)

    def record_failure(
        self,
        dependency: str,
        operation: str,
        error_type: str,
        latency_ms: float = 0,
    ) -> None:
        """Record a failed dependency call, tagged with the exception name."""
        self._append(METRIC_CALLS, 1, "Count", Dependency=dependency, Outcome="failure")
        self._append(METRIC_ERRORS, 1, "Count", Dependency=dependency, ErrorType=error_type)
        if latency_ms > 0:
            self._append(
                METRIC_LATENCY, latency_ms, "Milliseconds",
                Dependency=dependency, Operation=operation,
            )
        logger.debug(
            "Metric: %s %s failed (%s) after %.1fms",
            dependency, operation, error_type, latency_ms,
        )

    def record_booking_completed(self, service: str, urgency: str) -> None:
        self._append(METRIC_BOOKINGS, 1, "Count", Service=service or "unknown", Urgency=urgency)

    def flush(self) -> int:
        """Send buffered data points to CloudWatch.  Returns count sent."""
        with self._lock:
            if not self._buffer:
                return 0
            batch = self._buffer[:]
            self._buffer.clear()

        if not self._enabled:
            logger.debug("Metrics disabled, dropping %d data points", len(batch))
            return 0

        sent = 0
        try:
            cw = self._get_cw_client()
            for i in range(0, len(batch), MAX_BATCH_SIZE):
                chunk = batch[i : i + MAX_BATCH_SIZE]
                cw.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
            logger.info("Flushed %d metrics to CloudWatch", sent)
        except Exception:
            logger.exception("Failed to flush metrics to CloudWatch")
        return sent

    # ── Internal ──────────────────────────────────────────────────────

    def _append(self, name: str, value: float, unit: str, **dimensions: str) -> None:
        data_point = {
            "MetricName": name,
            "Dimensions": [{"Name": k, "Value": v} for k, v in dimensions.items()],
            "Timestamp": datetime.now(UTC),
            "Value": value,
            "Unit": unit,
        }
        with self._lock:
            self._buffer.append(data_point)

    def _start_flush_thread(self) -> None:
        def _loop():
            while True:
                time.sleep(FLUSH_INTERVAL_SECONDS)
                try:
                    self.flush()
                except Exception:
                    logger.exception("Metrics flush thread error")

        t = threading.Thread(target=_loop, daemon=True, name="metrics-flush")
        t.start()
        atexit.register(self.flush)
        logger.info("Metrics flush thread started (interval=%ds)", FLUSH_INTERVAL_SECONDS)


# ── Module-level singleton ──────────────────────────────────────────
metrics = MetricsClient()
