"""Tests for booking-state extraction."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from dental_booking.booking import (
    COMPLETE_STEP,
    CONFIRMATION_STEP,
    FIELD_ORDER,
    BookingRecord,
    determine_step,
    extract_booking_state,
    extract_date,
    extract_email,
    extract_name,
    extract_phone,
    extract_service,
    extract_time,
    is_confirmation,
)


def _user(content):
    return {"role": "user", "content": content}


def _assistant(content):
    return {"role": "assistant", "content": content}


def _users(*contents):
    return [_user(c) for c in contents]


# ── Step progression ─────────────────────────────────────────────────


class TestStepProgression:
    def test_empty_transcript_starts_at_step_one(self):
        state = extract_booking_state([])
        assert state == BookingRecord()
        assert state.step == 1
        assert state.urgency == "routine"
        assert state.is_complete is False

    def test_none_transcript_is_treated_as_empty(self):
        assert extract_booking_state(None).step == 1

    def test_name_only_moves_to_phone_step(self):
        state = extract_booking_state(_users("John Smith"))
        assert state.patient_name == "John Smith"
        assert state.step == 2

    def test_name_and_phone_moves_to_email_step(self):
        state = extract_booking_state(_users("John Smith", "555-123-4567"))
        assert state.phone_number == "555-123-4567"
        assert state.step == 3

    def test_all_fields_reach_confirmation_step(self, full_booking_messages):
        state = extract_booking_state(full_booking_messages)
        assert state.patient_name == "John Smith"
        assert state.phone_number == "555-123-4567"
        assert state.email == "john.smith@example.com"
        assert state.service_type == "cleaning"
        assert state.preferred_date == "monday"
        assert state.preferred_time == "10am"
        assert state.step == CONFIRMATION_STEP
        assert state.is_complete is False

    def test_affirmative_reply_completes_booking(self, confirmed_booking_messages):
        state = extract_booking_state(confirmed_booking_messages)
        assert state.is_complete is True
        assert state.step == COMPLETE_STEP

    def test_reports_earliest_missing_field(self):
        """An email without a name still leaves the booking at step 1."""
        state = extract_booking_state(_users("john@example.com"))
        assert state.email == "john@example.com"
        assert state.patient_name == ""
        assert state.step == 1


# ── Completion ───────────────────────────────────────────────────────


class TestCompletion:
    def test_confirmation_before_all_fields_does_not_complete(self):
        state = extract_booking_state(_users("John Smith", "yes"))
        assert state.is_complete is False
        assert state.step == 2

    def test_non_affirmative_reply_at_confirmation_step(self, full_booking_messages):
        state = extract_booking_state(full_booking_messages + [_user("make changes")])
        assert state.is_complete is False
        assert state.step == CONFIRMATION_STEP

    def test_only_latest_user_message_counts(self, confirmed_booking_messages):
        state = extract_booking_state(confirmed_booking_messages + [_user("thanks")])
        assert state.is_complete is False

    def test_step_stays_complete_after_confirmation(self, confirmed_booking_messages):
        state = extract_booking_state(confirmed_booking_messages + [_user("thanks")])
        assert state.step == COMPLETE_STEP

    def test_early_yes_does_not_count_as_confirmation(self, full_booking_messages):
        messages = [_user("yes"), *full_booking_messages[1:], _user("thanks")]
        state = extract_booking_state(messages)
        assert state.step == CONFIRMATION_STEP
        assert state.is_complete is False

    def test_assistant_message_after_confirmation_is_ignored(self, confirmed_booking_messages):
        messages = confirmed_booking_messages + [_assistant("Great, see you Monday!")]
        assert extract_booking_state(messages).is_complete is True

    def test_last_field_and_confirmation_in_one_message(self):
        messages = _users(
            "John Smith", "555-123-4567", "john@example.com",
            "checkup please", "friday", "2pm, yes book it",
        )
        state = extract_booking_state(messages)
        assert state.preferred_time == "2pm"
        assert state.is_complete is True

    @pytest.mark.parametrize("text", ["Yes", "I CONFIRM", "book it", "That's correct"])
    def test_confirmation_tokens(self, text):
        assert is_confirmation(text) is True

    @pytest.mark.parametrize("text", ["no", "Make changes", "wait"])
    def test_non_confirmation_tokens(self, text):
        assert is_confirmation(text) is False


# ── Locking & ordering ──────────────────────────────────────────────


class TestFieldLocking:
    def test_restated_name_is_ignored(self):
        state = extract_booking_state(_users("My name is Anna", "Actually call me Bob"))
        assert state.patient_name == "Anna"

    def test_second_phone_number_is_ignored(self):
        state = extract_booking_state(_users("Jane Doe", "5551234567", "555-999-0000"))
        assert state.phone_number == "5551234567"

    def test_assistant_messages_are_never_parsed(self):
        messages = [
            _assistant("My name is Linda, call 555-123-4567 or help@clinic.com"),
            _assistant("We have a cleaning slot on Monday at 10am"),
        ]
        state = extract_booking_state(messages)
        assert state == BookingRecord()

    def test_email_and_phone_in_one_message(self):
        messages = _users(
            "Jane Doe",
            "You can reach me at 555-123-4567 or jane@example.com",
        )
        state = extract_booking_state(messages)
        assert state.phone_number == "555-123-4567"
        assert state.email == "jane@example.com"
        assert state.step == 4

    def test_date_and_time_in_one_message(self):
        state = extract_booking_state(_users("Tomorrow at 10:30 am"))
        assert state.preferred_date == "tomorrow"
        assert state.preferred_time == "10:30 am"


class TestPureFunction:
    def test_idempotent(self, confirmed_booking_messages):
        first = extract_booking_state(confirmed_booking_messages)
        second = extract_booking_state(confirmed_booking_messages)
        assert first == second
        assert first is not second

    def test_does_not_mutate_input(self, full_booking_messages):
        snapshot = [dict(m) for m in full_booking_messages]
        extract_booking_state(full_booking_messages)
        assert full_booking_messages == snapshot

    def test_appending_messages_never_regresses(self, full_booking_messages):
        messages = full_booking_messages + [
            _user("yes, confirm"),
            _assistant("You're booked!"),
            _user("thanks"),
            _user("bye"),
        ]
        previous = extract_booking_state([])
        for i in range(1, len(messages) + 1):
            current = extract_booking_state(messages[:i])
            assert current.step >= previous.step
            for name in FIELD_ORDER:
                if getattr(previous, name):
                    assert getattr(current, name) == getattr(previous, name)
            previous = current
        assert previous.step == COMPLETE_STEP


# ── Malformed input ─────────────────────────────────────────────────


class TestMalformedInput:
    def test_garbage_messages_yield_default_record(self):
        messages = [
            {"role": "user", "content": None},
            {"role": "user"},
            {"content": "John Smith"},
            "John Smith",
            42,
            None,
        ]
        assert extract_booking_state(messages) == BookingRecord()

    def test_accepts_objects_with_role_and_content(self):
        messages = [SimpleNamespace(role="user", content="My name is Maria")]
        assert extract_booking_state(messages).patient_name == "Maria"

    def test_to_dict_has_every_field(self):
        data = extract_booking_state(_users("John Smith")).to_dict()
        assert data["patient_name"] == "John Smith"
        assert data["step"] == 2
        assert set(FIELD_ORDER) <= set(data)


# ── Individual extractors ───────────────────────────────────────────


class TestNameExtraction:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("My name is Anna", "Anna"),
            ("I'm Sarah Connor", "Sarah Connor"),
            ("Hi, I am Maria", "Maria"),
            ("John Smith", "John Smith"),
            ("Jane Doe here", "Jane Doe"),
        ],
    )
    def test_extracts_names(self, text, expected):
        assert extract_name(text) == expected

    @pytest.mark.parametrize("text", ["", "12345", "A", "555-123-4567"])
    def test_no_name(self, text):
        assert extract_name(text) == ""


class TestPhoneExtraction:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("5551234567", "5551234567"),
            ("call 555-123-4567", "555-123-4567"),
            ("555.123.4567", "555.123.4567"),
            ("555 123 4567", "555 123 4567"),
            ("+1 55512345", "+1 55512345"),
        ],
    )
    def test_extracts_phone_numbers(self, text, expected):
        assert extract_phone(text) == expected

    @pytest.mark.parametrize("text", ["", "no digits", "12345"])
    def test_no_phone(self, text):
        assert extract_phone(text) == ""


class TestEmailExtraction:
    def test_first_email_wins(self):
        assert extract_email("a@b.com or c@d.org") == "a@b.com"

    def test_requires_tld(self):
        assert extract_email("user@localhost") == ""


class TestServiceExtraction:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("I'd like a cleaning", "cleaning"),
            ("Just a regular CHECK-UP", "checkup"),
            ("an examination please", "checkup"),
            ("I want my teeth whitened", "whitening"),
            ("I think I have a cavity", "filling"),
            ("I have a broken tooth", "emergency"),
            ("it's urgent", "emergency"),
        ],
    )
    def test_categories(self, text, expected):
        assert extract_service(text) == expected

    def test_first_category_wins(self):
        assert extract_service("cleaning and whitening") == "cleaning"

    def test_broken_tooth_sets_emergency_urgency(self):
        state = extract_booking_state(_users("Jane Doe", "I have a broken tooth"))
        assert state.service_type == "emergency"
        assert state.urgency == "emergency"

    def test_routine_service_keeps_routine_urgency(self):
        state = extract_booking_state(_users("Jane Doe", "whitening please"))
        assert state.urgency == "routine"


class TestDateExtraction:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("Tuesday works", "tuesday"),
            ("How about next week?", "next week"),
            ("TOMORROW", "tomorrow"),
            ("monday or friday", "monday"),
        ],
    )
    def test_vocabulary(self, text, expected):
        assert extract_date(text) == expected

    def test_calendar_dates_are_not_parsed(self):
        assert extract_date("2026-03-14") == ""
        assert extract_date("Saturday") == ""


class TestTimeExtraction:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("2:30 PM works", "2:30 PM"),
            ("around 4pm", "4pm"),
            ("2 pm", "2 pm"),
            ("14:00", "14:00"),
        ],
    )
    def test_formats(self, text, expected):
        assert extract_time(text) == expected

    def test_no_time(self):
        assert extract_time("whenever") == ""


class TestDetermineStep:
    def test_each_missing_field_maps_to_its_ordinal(self):
        full = dict(
            patient_name="A B", phone_number="1", email="e", service_type="s",
            preferred_date="d", preferred_time="t",
        )
        for index, name in enumerate(FIELD_ORDER, start=1):
            record = BookingRecord(**{**full, name: ""})
            assert determine_step(record) == index

    def test_all_filled_is_confirmation(self):
        record = BookingRecord(
            patient_name="A B", phone_number="1", email="e", service_type="s",
            preferred_date="d", preferred_time="t",
        )
        assert determine_step(record) == CONFIRMATION_STEP
