"""Tests for transcripts, history previews and the session store."""

from __future__ import annotations

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

from community_assistant.prompts import get_system_prompt
from community_assistant.sessions import (
    DEFAULT_SESSION_ID,
    SessionStore,
    Transcript,
    message_role,
    preview,
)


class TestTranscript:
    def test_starts_with_single_developer_message(self):
        transcript = Transcript()
        assert len(transcript) == 1
        assert isinstance(transcript[0], SystemMessage)
        assert message_role(transcript[0]) == "developer"
        assert transcript[0].content == get_system_prompt()

    def test_reset_leaves_only_instruction_message(self):
        transcript = Transcript()
        transcript.append(HumanMessage(content="Who lives in Apt 119?"))
        transcript.append(AIMessage(content="John Smith."))

        transcript.reset()

        assert len(transcript) == 1
        assert message_role(transcript[0]) == "developer"
        assert transcript[0].content == get_system_prompt()

    def test_messages_returns_a_copy(self):
        transcript = Transcript()
        snapshot = transcript.messages
        snapshot.append(HumanMessage(content="not in the transcript"))
        assert len(transcript) == 1


class TestSummary:
    def test_roles_and_tool_call_flags(self):
        transcript = Transcript()
        transcript.extend([
            HumanMessage(content="Who are all the residents?"),
            AIMessage(content="", tool_calls=[{"name": "getAllResidents", "args": {}, "id": "call_1"}]),
            ToolMessage(content="[]", tool_call_id="call_1"),
            AIMessage(content="There are no residents."),
        ])

        summary = transcript.summary()

        assert [e["role"] for e in summary] == ["developer", "user", "assistant", "tool", "assistant"]
        assert [e["has_tool_calls"] for e in summary] == [False, False, True, False, False]
        assert [e["index"] for e in summary] == [0, 1, 2, 3, 4]

    def test_message_without_content_shows_placeholder(self):
        transcript = Transcript()
        transcript.append(AIMessage(content="", tool_calls=[{"name": "getAllResidents", "args": {}, "id": "c"}]))
        assert transcript.summary()[1]["content"] == "N/A"

    def test_long_content_is_truncated(self):
        transcript = Transcript()
        transcript.append(HumanMessage(content="x" * 250))

        content = transcript.summary()[1]["content"]

        assert content == "x" * 100 + "..."
        assert len(content) == 103

    def test_instruction_message_preview_is_capped(self):
        assert len(Transcript().summary()[0]["content"]) <= 103


class TestPreview:
    def test_short_content_unchanged(self):
        assert preview("hello") == "hello"

    def test_exactly_100_characters_not_marked(self):
        assert preview("y" * 100) == "y" * 100

    def test_101_characters_truncated(self):
        assert preview("y" * 101) == "y" * 100 + "..."

    def test_none_shows_placeholder(self):
        assert preview(None) == "N/A"


class TestSessionStore:
    def test_default_session_exists(self):
        store = SessionStore()
        assert DEFAULT_SESSION_ID in store
        assert store.get() is store.get(DEFAULT_SESSION_ID)

    def test_sessions_are_created_on_first_use_and_isolated(self):
        store = SessionStore()
        other = store.get("night-shift")
        other.transcript.append(HumanMessage(content="Hi"))

        assert len(store) == 2
        assert len(store.get().transcript) == 1
        assert store.get("night-shift") is other

    def test_find_does_not_create(self):
        store = SessionStore()

        assert store.find("night-shift") is None
        assert "night-shift" not in store
        assert len(store) == 1
        assert store.find() is store.get()
