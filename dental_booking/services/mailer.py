"""SMTP notification sent to clinic staff when a booking is confirmed."""

from __future__ import annotations

import html
import logging
import smtplib
import time
from datetime import datetime
from email.header import Header
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr

from dental_booking.booking import BookingRecord
from dental_booking.config import (
    CLINIC_NAME,
    DOCTOR_EMAIL,
    EMAIL_PASS,
    EMAIL_USER,
    SMTP_HOST,
    SMTP_PORT,
)
from dental_booking.services.metrics import metrics

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 20.0


class MailerError(Exception):
    """Raised when the booking notification could not be sent."""


class MailerNotConfiguredError(MailerError):
    """SMTP credentials are missing."""


def _detail_rows(state: BookingRecord) -> list[tuple[str, str]]:
    return [
        ("👤 Patient", state.patient_name),
        ("📞 Phone", state.phone_number),
        ("📧 Email", state.email),
        ("🔧 Service", state.service_type),
        ("📅 Date", state.preferred_date),
        ("🕒 Time", state.preferred_time),
        ("🚨 Urgency", state.urgency),
    ]


def build_booking_email(
    state: BookingRecord,
    sender: str,
    recipient: str,
    *,
    received_at: datetime | None = None,
) -> MIMEMultipart:
    """Build the plain-text + HTML notification for *state*."""
    received = (received_at or datetime.now()).strftime("%Y-%m-%d %H:%M")
    rows = _detail_rows(state)

    text_body = "\n".join(
        [f"{CLINIC_NAME} Clinic - New Booking", ""]
        + [f"{label}: {value}" for label, value in rows]
        + ["", f"Received: {received}"]
    )
    html_rows = "\n".join(
        f"<p><strong>{label}:</strong> {html.escape(value)}</p>" for label, value in rows
    )
    html_body = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; background: #f9f9f9; padding: 20px;">
      <div style="background: white; padding: 30px; border-radius: 10px;">
        <h1 style="color: #2563eb; text-align: center;">🦷 {html.escape(CLINIC_NAME)} Clinic - New Booking</h1>
        <h2>📅 Appointment Details</h2>
        {html_rows}
        <hr>
        <p style="text-align: center; color: #666; font-size: 12px;">
          📅 Received: {received}<br>
          🤖 {html.escape(CLINIC_NAME)} AI Booking Assistant
        </p>
      </div>
    </div>
    """

    msg = MIMEMultipart("alternative")
    msg["From"] = formataddr((f"{CLINIC_NAME} AI Booking", sender))
    msg["To"] = recipient
    msg["Subject"] = Header(
        f"🦷 NEW BOOKING: {state.patient_name} - {state.service_type}", "utf-8",
    )
    msg.attach(MIMEText(text_body, "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    return msg


class BookingMailer:
    """Send booking notifications through an authenticated SMTP server."""

    def __init__(
        self,
        user: str | None = None,
        password: str | None = None,
        *,
        recipient: str | None = None,
        host: str | None = None,
        port: int | None = None,
    ):
        self._user = EMAIL_USER if user is None else user
        self._password = EMAIL_PASS if password is None else password
        self._recipient = recipient or DOCTOR_EMAIL or self._user
        self._host = host or SMTP_HOST
        self._port = port or SMTP_PORT

    @property
    def configured(self) -> bool:
        return bool(self._user and self._password)

    def send_booking(self, state: BookingRecord) -> None:
        """Email the staff about a confirmed booking.

        Raises:
            MailerNotConfiguredError: credentials are missing.
            MailerError: the SMTP exchange failed.
        """
        if not self.configured:
            raise MailerNotConfiguredError("Email credentials not configured")

        msg = build_booking_email(state, self._user, self._recipient)
        t0 = time.perf_counter()
        try:
            with smtplib.SMTP(self._host, self._port, timeout=SMTP_TIMEOUT_SECONDS) as server:
                server.starttls()
                server.login(self._user, self._password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            metrics.record_failure(
                "smtp", "send_booking",
                error_type=type(exc).__name__,
                latency_ms=(time.perf_counter() - t0) * 1000,
            )
            raise MailerError(f"Failed to send booking email: {exc}") from exc

        elapsed = (time.perf_counter() - t0) * 1000
        metrics.record_success("smtp", "send_booking", latency_ms=elapsed)
        logger.info(
            "Booking email for %s sent to %s (%.0fms)",
            state.patient_name, self._recipient, elapsed,
        )
