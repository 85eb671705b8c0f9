"""Dr. Smile booking assistant — a chat assistant that books dental appointments.

Architecture Overview
=====================

The browser chat widget posts the **whole transcript** on every turn.  The
server keeps no conversation state; each request goes through:

1. **extract_booking_state** — a rule-based extractor that scans the user's
   messages and fills six fields (name, phone, email, service, date, time)
   in a fixed order.  The first empty field determines the step (1-6); with
   all six filled the booking waits for confirmation (step 7), and an
   affirmative reply completes it (step 8, which later messages keep).

2. **ReplyGenerator** — asks Claude (LangChain ``ChatAnthropic``) for a
   friendly reply guided by the booking state.  Calls are throttled per
   session and retried with backoff, honouring ``Retry-After``.

3. **Scripted fallback** — if the LLM is not configured or fails, a
   step-specific scripted reply is used instead, so a booking can always be
   completed.

4. **BookingMailer** — once the booking is confirmed, clinic staff are
   emailed over SMTP.

Package Structure
-----------------
- ``dental_booking/booking.py`` — booking record and field extraction
- ``dental_booking/prompts.py`` — system prompt and scripted copy
- ``dental_booking/assistant.py`` — one chat turn, end to end
- ``dental_booking/config.py`` — configuration from env / ``.env`` / SSM
- ``dental_booking/server.py`` — FastAPI application
- ``dental_booking/main.py`` — CLI chat interface
- ``dental_booking/services/`` — LLM client, rate limiter, mailer, metrics
- ``dental_booking/api/`` — FastAPI routes and Pydantic schemas
"""
