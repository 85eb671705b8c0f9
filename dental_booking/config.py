"""Centralized configuration for the Dr. Smile booking assistant.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/dental-booking/<VARIABLE_NAME>``.

No secret is mandatory: without an LLM key the assistant answers with its
scripted replies, and without mail credentials completed bookings are
reported to the patient as "staff will contact you".
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# ── Feature flag: running on AWS? ────────────────────────────────────
_ON_AWS = bool(os.getenv("AWS_EXECUTION_ENV"))


# ── Secret resolution ────────────────────────────────────────────────

def _get_ssm_parameter(name: str) -> str | None:
    """Fetch a SecureString from SSM Parameter Store.

    Returns ``None`` if the parameter does not exist or boto3 is
    unavailable.  Errors are logged but never raised so that local-dev
    fallback still works.
    """
    try:
        import boto3  # noqa: PLC0415 — lazy import to avoid boto3 dep in tests

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"/dental-booking/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed (expected locally)", name)
        return None


def _optional_secret(name: str) -> str:
    """Return a secret from env-var or SSM, or ``""`` when it is not set."""
    value = os.getenv(name)
    if value and not value.startswith("your_"):
        return value

    if _ON_AWS:
        ssm_value = _get_ssm_parameter(name)
        if ssm_value:
            return ssm_value

    logger.info("%s is not configured; the related feature is disabled", name)
    return ""


# ── Clinic ──────────────────────────────────────────────────────────
CLINIC_NAME: str = os.getenv("CLINIC_NAME", "Dr. Smile")
CLINIC_PHONE: str = os.getenv("CLINIC_PHONE", "(555) 123-SMILE")

# ── LLM ─────────────────────────────────────────────────────────────
ANTHROPIC_API_KEY: str = _optional_secret("ANTHROPIC_API_KEY")
MODEL_NAME: str = os.getenv("MODEL_NAME", "claude-haiku-4-5")
LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.7"))
LLM_MAX_TOKENS: int = int(os.getenv("LLM_MAX_TOKENS", "500"))

# ── Per-session throttling of LLM calls ─────────────────────────────
RATE_LIMIT_MIN_INTERVAL_SECONDS: float = float(
    os.getenv("RATE_LIMIT_MIN_INTERVAL_SECONDS", "2"),
)
RATE_LIMIT_MAX_CALLS: int = int(os.getenv("RATE_LIMIT_MAX_CALLS", "10"))
RATE_LIMIT_IDLE_SECONDS: float = float(os.getenv("RATE_LIMIT_IDLE_SECONDS", "300"))

# ── Notification email ──────────────────────────────────────────────
EMAIL_USER: str = _optional_secret("EMAIL_USER")
EMAIL_PASS: str = _optional_secret("EMAIL_PASS")
DOCTOR_EMAIL: str = os.getenv("DOCTOR_EMAIL", "")
SMTP_HOST: str = os.getenv("SMTP_HOST", "smtp.gmail.com")
SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))

# ── Server ──────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8000"))
CORS_ORIGINS: list[str] = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")
