"""Booking-state extraction for the Dr. Smile chat assistant.

The booking record is never stored anywhere: it is rebuilt from scratch on
every request by scanning the user's side of the transcript.  Each field is
filled by the first message (and the first matcher) that yields a value, and
once filled it is locked for the rest of the scan.

Steps:
    1 name → 2 phone → 3 email → 4 service → 5 date → 6 time
    → 7 confirmation → 8 complete
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import asdict, dataclass
from typing import Any

CONFIRMATION_STEP = 7
COMPLETE_STEP = 8

# ── Matchers (order matters: first hit wins) ─────────────────────────

_NAME_PATTERNS = (
    re.compile(r"(?:my name is|i'm|i am|name.*is)\s+([a-zA-Z\s]+)", re.IGNORECASE),
    re.compile(r"^([a-zA-Z]+\s+[a-zA-Z]+)$"),
    re.compile(r"([a-zA-Z]+\s+[a-zA-Z]+)"),
)
_NAME_CHARS_RE = re.compile(r"^[a-zA-Z\s]+$")

_PHONE_PATTERNS = (
    re.compile(r"(\d{10})"),
    re.compile(r"(\d{3}[-.\s]?\d{3}[-.\s]?\d{4})"),
    re.compile(r"(\+\d{1,3}[-.\s]?\d{8,12})"),
    re.compile(r"(\d{10,12})"),
)

_EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

SERVICE_KEYWORDS: dict[str, tuple[str, ...]] = {
    "cleaning": ("cleaning", "clean"),
    "checkup": ("checkup", "check-up", "check up", "examination"),
    "whitening": ("whitening", "whiten", "bleaching"),
    "filling": ("filling", "cavity", "drill"),
    "emergency": ("emergency", "urgent", "pain", "broken tooth"),
}

DATE_KEYWORDS = (
    "monday", "tuesday", "wednesday", "thursday", "friday",
    "tomorrow", "next week",
)

_TIME_PATTERNS = (
    re.compile(r"(\d{1,2}(?::\d{2})?\s*(?:am|pm))", re.IGNORECASE),
    re.compile(r"(\d{1,2}\s*(?:am|pm))", re.IGNORECASE),
    re.compile(r"(\d{1,2}:\d{2})"),
)

CONFIRMATION_TOKENS = ("yes", "confirm", "book it", "correct")

# Field order drives step numbering.
FIELD_ORDER = (
    "patient_name",
    "phone_number",
    "email",
    "service_type",
    "preferred_date",
    "preferred_time",
)


@dataclass
class BookingRecord:
    """Structured view of a booking conversation."""

    step: int = 1
    patient_name: str = ""
    phone_number: str = ""
    email: str = ""
    service_type: str = ""
    preferred_date: str = ""
    preferred_time: str = ""
    urgency: str = "routine"
    additional_notes: str = ""
    is_complete: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ── Per-field extractors ─────────────────────────────────────────────


def extract_name(text: str) -> str:
    """Return a patient name found in *text*, or ``""``."""
    for pattern in _NAME_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        candidate = match.group(1).strip()
        if len(candidate) >= 2 and _NAME_CHARS_RE.match(candidate):
            return candidate
    return ""


def extract_phone(text: str) -> str:
    for pattern in _PHONE_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return ""


def extract_email(text: str) -> str:
    match = _EMAIL_RE.search(text)
    return match.group(0) if match else ""


def extract_service(text: str) -> str:
    """Return the first service category whose synonyms appear in *text*."""
    lowered = text.lower()
    for service, keywords in SERVICE_KEYWORDS.items():
        if any(keyword in lowered for keyword in keywords):
            return service
    return ""


def extract_date(text: str) -> str:
    lowered = text.lower()
    for keyword in DATE_KEYWORDS:
        if keyword in lowered:
            return keyword
    return ""


def extract_time(text: str) -> str:
    for pattern in _TIME_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return ""


_EXTRACTORS = {
    "patient_name": extract_name,
    "phone_number": extract_phone,
    "email": extract_email,
    "service_type": extract_service,
    "preferred_date": extract_date,
    "preferred_time": extract_time,
}


# ── Transcript helpers ───────────────────────────────────────────────


def _field(message: Any, name: str) -> Any:
    if isinstance(message, Mapping):
        return message.get(name)
    return getattr(message, name, None)


def iter_messages(messages: Iterable[Any] | None) -> Iterator[tuple[str, str]]:
    """Yield ``(role, content)`` pairs from a transcript.

    Accepts mappings (``{"role": ..., "content": ...}``) or objects with
    ``role`` / ``content`` attributes.  Missing or non-string values come
    back as ``""``.
    """
    for message in messages or ():
        role = _field(message, "role")
        content = _field(message, "content")
        yield (
            role if isinstance(role, str) else "",
            content if isinstance(content, str) else "",
        )


def user_contents(messages: Iterable[Any] | None) -> list[str]:
    """Return the text of every user-authored message, in order."""
    return [content for role, content in iter_messages(messages) if role == "user"]


def is_confirmation(text: str) -> bool:
    lowered = text.lower()
    return any(token in lowered for token in CONFIRMATION_TOKENS)


def determine_step(record: BookingRecord) -> int:
    """Return the 1-based ordinal of the first empty field, or 7."""
    for index, name in enumerate(FIELD_ORDER, start=1):
        if not getattr(record, name):
            return index
    return CONFIRMATION_STEP


# ── Public entry point ───────────────────────────────────────────────


def extract_booking_state(messages: Iterable[Any] | None) -> BookingRecord:
    """Build a fresh :class:`BookingRecord` from the full transcript.

    Pure and idempotent: the same transcript always yields the same record.
    Assistant messages are ignored, and a field filled by an earlier
    message is never overwritten by a later one.

    ``step`` becomes 8 at the first affirmative user message sent while all
    six fields are filled, and never goes back.  ``is_complete`` is only set
    while that affirmative is still the latest user message.
    """
    record = BookingRecord()
    texts = user_contents(messages)
    confirmed = False

    for text in texts:
        for name in FIELD_ORDER:
            if getattr(record, name):
                continue
            value = _EXTRACTORS[name](text)
            if value:
                setattr(record, name, value)
        # Only counts once all six fields are in; step 8 then stays put.
        if not confirmed and is_confirmation(text):
            confirmed = determine_step(record) == CONFIRMATION_STEP

    if record.service_type == "emergency":
        record.urgency = "emergency"

    record.step = COMPLETE_STEP if confirmed else determine_step(record)
    record.is_complete = confirmed and is_confirmation(texts[-1])

    return record
