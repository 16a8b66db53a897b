"""CLI entry point for the Community Assistant.

A terminal chat loop against the default session, for development.  For
production, use the FastAPI server (community_assistant/server.py).

Usage:
    uv run python -m community_assistant.main            # normal mode (quiet)
    uv run python -m community_assistant.main --debug    # debug mode (shows API calls)
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """WARNING by default, DEBUG when --debug is passed."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )

    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("community_assistant").setLevel(logging.DEBUG if debug else logging.INFO)


async def _chat_loop() -> None:
    # Imported here so that load_dotenv() has run before config is read
    from community_assistant.agent import create_community_agent, generate_response
    from community_assistant.services.directory_client import close_directory_client
    from community_assistant.sessions import SessionStore

    agent = create_community_agent()
    session = SessionStore().get()

    try:
        while True:
            try:
                user_input = (await asyncio.to_thread(input, "You: ")).strip()
            except (KeyboardInterrupt, EOFError):
                print("\n\nGoodbye!")
                break

            if not user_input:
                continue

            command = user_input.lower()
            if command in ("exit", "quit", "q"):
                print("\nGoodbye!")
                break

            if command == "reset":
                session.transcript.reset()
                print("\n>> Conversation history has been reset.\n")
                continue

            if command == "history":
                for entry in session.transcript.summary():
                    marker = " [tool calls]" if entry["has_tool_calls"] else ""
                    print(f"  {entry['index']:>3} {entry['role']:<9}{marker} {entry['content']}")
                print()
                continue

            try:
                reply = await generate_response(agent, session.transcript, user_input)
                print(f"\nAssistant: {reply}\n")
            except Exception as e:
                logger.exception("Error processing message")
                print(f"\nAssistant: something went wrong: {e}")
                print("     Try again or type 'reset' to start a fresh conversation.\n")
    finally:
        await close_directory_client()


def main():
    """Run the interactive CLI chat loop."""
    parser = argparse.ArgumentParser(description="Community Assistant CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    args = parser.parse_args()

    load_dotenv()
    _configure_logging(debug=args.debug)

    print("\n" + "=" * 60)
    print("  Community Assistant - CLI Chat")
    print("=" * 60)
    print("  Type your question and press Enter.")
    print("  Commands: 'quit' to exit, 'reset' to clear the conversation,")
    print("            'history' to show the transcript.")
    print("=" * 60 + "\n")

    asyncio.run(_chat_loop())


if __name__ == "__main__":
    main()
