"""Prompts and scripted copy for the booking assistant.

Everything the patient sees that is not written by the LLM lives here:
the system prompt, the per-step fallback replies used when the LLM is
unavailable, the progress indicator, the completion summary and the
quick-reply / placeholder hints for the chat widget.
"""

from __future__ import annotations

from dental_booking.booking import CONFIRMATION_STEP, BookingRecord
from dental_booking.config import CLINIC_NAME, CLINIC_PHONE

TOTAL_STEPS = CONFIRMATION_STEP

STEP_NAMES = ("Name", "Phone", "Email", "Service", "Date", "Time", "Confirm")

TIME_SLOTS = ("10:00 AM", "2:00 PM", "4:00 PM")

SERVICE_MENU = (
    "• Routine Cleaning ($120)\n"
    "• Comprehensive Checkup ($80)\n"
    "• Teeth Whitening ($300)\n"
    "• Dental Fillings ($150-250)\n"
    "• Emergency Consultation ($200)"
)

HIGH_DEMAND_NOTICE = (
    "⚠️ *Our AI is experiencing high demand right now, but I can still help "
    "you book your appointment step by step.*"
)

EMAIL_FAILED_NOTICE = (
    "⚠️ Booking saved, but there was an issue sending the notification. "
    "Our staff will contact you shortly."
)

TECHNICAL_DIFFICULTIES = (
    "I'm experiencing technical difficulties. Please try again in a moment, "
    f"or call us directly at {CLINIC_PHONE} for immediate assistance."
)

SYSTEM_PROMPT_TEMPLATE = """You are {clinic}'s dental booking assistant. Current step: {step}/{total}.

Collected info:
- Name: {name}
- Phone: {phone}
- Email: {email}
- Service: {service}
- Date: {date}
- Time: {time}

Be helpful, professional, and guide them through the missing information. Keep responses concise."""


def get_system_prompt(state: BookingRecord) -> str:
    """Return the system prompt describing what has been collected so far."""
    return SYSTEM_PROMPT_TEMPLATE.format(
        clinic=CLINIC_NAME,
        step=min(state.step, TOTAL_STEPS),
        total=TOTAL_STEPS,
        name=state.patient_name or "needed",
        phone=state.phone_number or "needed",
        email=state.email or "needed",
        service=state.service_type or "needed",
        date=state.preferred_date or "needed",
        time=state.preferred_time or "needed",
    )


def format_booking_details(state: BookingRecord) -> str:
    return (
        f"👤 Name: {state.patient_name}\n"
        f"📞 Phone: {state.phone_number}\n"
        f"📧 Email: {state.email}\n"
        f"🔧 Service: {state.service_type}\n"
        f"📅 Date: {state.preferred_date}\n"
        f"🕒 Time: {state.preferred_time}"
    )


def get_fallback_response(state: BookingRecord) -> str:
    """Scripted reply for the current step, used when the LLM can't answer."""
    step = state.step
    if step == 1:
        return (
            f"Welcome to {CLINIC_NAME}! I'm here to help you book an appointment. "
            "To get started, could you please tell me your full name?"
        )
    if step == 2:
        return (
            f"Thank you, {state.patient_name}! Now I'll need your phone number so we "
            "can contact you about your appointment. Please provide your phone number."
        )
    if step == 3:
        return (
            f"Perfect! I have your phone number as {state.phone_number}. Next, could "
            "you please provide your email address for appointment confirmations?"
        )
    if step == 4:
        return (
            f"Great! I have your email as {state.email}. Now, what type of dental "
            f"service would you like to book?\n\n{SERVICE_MENU}\n\n"
            "Which service interests you?"
        )
    if step == 5:
        return (
            f"Excellent choice! You've selected {state.service_type}. Now, which day "
            "would work best for you? We're available Monday through Friday. "
            "What's your preferred day?"
        )
    if step == 6:
        slots = "\n".join(f"• {slot}" for slot in TIME_SLOTS)
        return (
            f"Perfect! You've chosen {state.preferred_date}. For that day, we have "
            f"appointments available at:\n{slots}\n\nWhich time slot would you prefer?"
        )
    if step == 7:
        return (
            "Excellent! Let me confirm your appointment details:\n\n"
            f"{format_booking_details(state)}\n\n"
            'Is all this information correct? Please confirm by saying "yes" to '
            "book your appointment."
        )
    return (
        "I'm here to help you book your dental appointment. "
        "Let's start with your name - what should I call you?"
    )


def add_progress_indicator(reply: str, state: BookingRecord) -> str:
    """Append a ``▓▓▓░░░░ (3/7 - Email)`` style progress bar to *reply*."""
    filled = min(state.step, TOTAL_STEPS)
    bar = "▓" * filled + "░" * (TOTAL_STEPS - filled)
    if 1 <= state.step <= TOTAL_STEPS:
        step_name = STEP_NAMES[state.step - 1]
    else:
        step_name = "Complete"
    return f"{reply}\n\n📋 **Booking Progress:** {bar} ({filled}/{TOTAL_STEPS} - {step_name})"


def get_completion_message(state: BookingRecord) -> str:
    return (
        "🎉 **Congratulations!** Your appointment has been successfully booked!\n\n"
        "📋 **Appointment Summary:**\n"
        f"{format_booking_details(state)}\n\n"
        "✅ The doctor has been notified and will contact you soon to confirm the details.\n"
        "📧 You should also receive a confirmation email shortly.\n\n"
        f"Thank you for choosing {CLINIC_NAME} Dental Clinic! 🦷"
    )


# ── Widget hints ─────────────────────────────────────────────────────


def get_quick_replies(state: BookingRecord | None) -> list[str]:
    """Suggested one-tap answers for the current step."""
    if state is None:
        return []
    if state.step == 4:
        return ["Cleaning", "Checkup", "Whitening", "Filling", "Emergency"]
    if state.step == 5:
        return ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
    if state.step == 6:
        return list(TIME_SLOTS)
    if state.step == 7:
        return ["Yes, confirm", "Make changes"]
    return []


_PLACEHOLDERS = {
    1: "Enter your full name...",
    2: "Enter your phone number...",
    3: "Enter your email address...",
    4: "Choose a service...",
    5: "Choose your preferred day...",
    6: "Choose your preferred time...",
    7: "Confirm your appointment...",
}


def get_input_placeholder(state: BookingRecord | None) -> str:
    if state is None:
        return "Type your message..."
    return _PLACEHOLDERS.get(state.step, "Type your message...")
