"""CLI entry point for the Dr. Smile booking assistant.

A terminal chat loop for testing and development.  It keeps the transcript
locally and sends all of it on every turn, exactly like the web widget.
For production, use the FastAPI server (dental_booking/server.py).

Usage:
    uv run python -m dental_booking.main            # normal mode (quiet)
    uv run python -m dental_booking.main --debug    # debug mode (shows API calls)
"""

from __future__ import annotations

import argparse
import logging

from dotenv import load_dotenv

from dental_booking.assistant import create_booking_assistant, new_session_id

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    root_level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=root_level,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )

    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("dental_booking").setLevel(logging.DEBUG if debug else logging.INFO)


def main():
    """Run the interactive CLI chat loop."""
    parser = argparse.ArgumentParser(description="Dr. Smile booking assistant CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    args = parser.parse_args()

    load_dotenv()
    _configure_logging(debug=args.debug)

    print("\n" + "=" * 60)
    print("  Dr. Smile Booking Assistant - CLI Chat")
    print("=" * 60)
    print("  Type your message and press Enter.")
    print("  Commands: 'quit' to exit, 'new' to start over.")
    print("=" * 60 + "\n")

    assistant = create_booking_assistant()
    transcript: list[dict[str, str]] = []
    session_id = new_session_id()

    while True:
        try:
            user_input = input("You: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nGoodbye!")
            break

        if not user_input:
            continue

        if user_input.lower() in ("exit", "quit", "q"):
            print("\nGoodbye! Have a great day!")
            break

        if user_input.lower() == "new":
            transcript = []
            session_id = new_session_id()
            print("\n>> New booking started.\n")
            continue

        transcript.append({"role": "user", "content": user_input})
        try:
            turn = assistant.respond(transcript, session_id)
        except KeyboardInterrupt:
            print("\n\nGoodbye!")
            break
        except Exception as e:
            logger.exception("Error processing message")
            transcript.pop()
            print(f"\nAssistant: I'm sorry, something went wrong: {e}")
            print("     Please try again or type 'new' to start over.\n")
            continue

        transcript.append({"role": "assistant", "content": turn.reply})
        print(f"\nAssistant: {turn.reply}\n")
        if turn.quick_replies:
            print(f"  Suggestions: {' | '.join(turn.quick_replies)}\n")
        if turn.booking_state.is_complete:
            print(">> Booking complete. Type 'new' to book another appointment.\n")


if __name__ == "__main__":
    main()
