"""Shared test fixtures for the booking assistant test suite."""

from __future__ import annotations

import os

import pytest


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    Keeps CloudWatch off and makes sure no real LLM key or mailbox from a
    developer's ``.env`` leaks into the tests.
    """
    os.environ["METRICS_ENABLED"] = "false"
    os.environ["ANTHROPIC_API_KEY"] = ""
    os.environ["EMAIL_USER"] = ""
    os.environ["EMAIL_PASS"] = ""


def user(content):
    return {"role": "user", "content": content}


def assistant(content):
    return {"role": "assistant", "content": content}


FULL_BOOKING_REPLIES = [
    "John Smith",
    "555-123-4567",
    "john.smith@example.com",
    "I need a cleaning",
    "Monday",
    "10am",
]


@pytest.fixture
def full_booking_messages():
    """A transcript where the user has supplied all six fields."""
    messages = [assistant("Welcome! What's your full name?")]
    for reply in FULL_BOOKING_REPLIES:
        messages.append(user(reply))
        messages.append(assistant("Thanks! Next question..."))
    return messages


@pytest.fixture
def confirmed_booking_messages(full_booking_messages):
    return full_booking_messages + [user("yes, confirm")]
