"""Conversation transcripts and the sessions that own them.

A ``Transcript`` is the ordered message history sent to the model.  Element 0
is always the instruction message.  Each ``Session`` pairs a transcript with
an ``asyncio.Lock`` so that a conversation loop and a reset on the same
session never interleave.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

from community_assistant.prompts import build_instruction_message

DEFAULT_SESSION_ID = "default"
PREVIEW_LENGTH = 100
NO_CONTENT = "N/A"
SESSION_ID_MAX_LENGTH = 100


def message_role(message: BaseMessage) -> str:
    """Return the wire role of *message* (``developer``, ``user``, ...)."""
    if isinstance(message, SystemMessage):
        return message.additional_kwargs.get("__openai_role__", "system")
    if isinstance(message, HumanMessage):
        return "user"
    if isinstance(message, AIMessage):
        return "assistant"
    if isinstance(message, ToolMessage):
        return "tool"
    return message.type


def has_tool_calls(message: BaseMessage) -> bool:
    """True when *message* requests tools, including calls the provider could not parse."""
    return bool(getattr(message, "tool_calls", None) or getattr(message, "invalid_tool_calls", None))


def preview(content: Any) -> str:
    """Truncate message content for display; ``N/A`` when there is none."""
    if not content:
        return NO_CONTENT
    text = content if isinstance(content, str) else str(content)
    if len(text) > PREVIEW_LENGTH:
        return text[:PREVIEW_LENGTH] + "..."
    return text


class Transcript:
    """Ordered message history for one conversation."""

    def __init__(self) -> None:
        self._messages: list[BaseMessage] = [build_instruction_message()]

    @property
    def messages(self) -> list[BaseMessage]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __getitem__(self, index: int) -> BaseMessage:
        return self._messages[index]

    def append(self, message: BaseMessage) -> None:
        self._messages.append(message)

    def extend(self, messages: list[BaseMessage]) -> None:
        self._messages.extend(messages)

    def reset(self) -> None:
        """Drop everything but a fresh instruction message."""
        self._messages = [build_instruction_message()]

    def summary(self) -> list[dict[str, Any]]:
        return [
            {
                "index": index,
                "role": message_role(message),
                "content": preview(message.content),
                "has_tool_calls": has_tool_calls(message),
            }
            for index, message in enumerate(self._messages)
        ]


@dataclass
class Session:
    session_id: str
    transcript: Transcript = field(default_factory=Transcript)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)


class SessionStore:
    """In-memory session registry; the default session always exists."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {
            DEFAULT_SESSION_ID: Session(DEFAULT_SESSION_ID),
        }

    def get(self, session_id: str = DEFAULT_SESSION_ID) -> Session:
        """Return the session, creating it on first use."""
        session = self._sessions.get(session_id)
        if session is None:
            session = self._sessions[session_id] = Session(session_id)
        return session

    def find(self, session_id: str = DEFAULT_SESSION_ID) -> Session | None:
        """Return an existing session without creating one."""
        return self._sessions.get(session_id)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
