"""Shared test fixtures for the Community Assistant test suite."""

from __future__ import annotations

import itertools
import os
from unittest.mock import AsyncMock, MagicMock

import pytest


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    This runs before any imports, so config.py won't fail on module load.
    """
    os.environ.setdefault("OPENAI_API_KEY", "test-openai-key-123")
    os.environ.setdefault("GRAPHQL_URL", "http://directory.test/graphql")


class FakeChatModel:
    """Stands in for the tool-bound chat model.

    Each ``ainvoke`` records a snapshot of the messages it was sent and
    returns the next scripted reply.  A reply may be a message, an exception
    (raised), or a zero-argument callable (called for a fresh message).
    Once the script runs out, ``default`` is used if given.
    """

    def __init__(self, replies=(), default=None):
        self._replies = list(replies)
        self._default = default
        self.calls: list[list] = []

    async def ainvoke(self, messages):
        self.calls.append(list(messages))
        reply = self._replies.pop(0) if self._replies else self._default
        if reply is None:
            raise AssertionError("FakeChatModel ran out of scripted replies")
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply()
        return reply


@pytest.fixture
def fake_llm():
    """Factory fixture for scripted chat models."""
    return FakeChatModel


@pytest.fixture
def tool_call_ids():
    """Endless supply of unique tool-call ids."""
    counter = itertools.count(1)
    return lambda: f"call_{next(counter)}"


@pytest.fixture
def directory_client():
    """A DirectoryClient double whose three queries are AsyncMocks."""
    client = MagicMock()
    client.get_all_residents = AsyncMock(return_value=[])
    client.get_residents_by_name = AsyncMock(return_value=[])
    client.get_locations_by_name = AsyncMock(return_value=[])
    return client


@pytest.fixture
def mock_graphql_response():
    """Factory fixture for creating mock GraphQL HTTP responses."""

    def _make(data: dict, status_code: int = 200):
        mock = MagicMock()
        mock.status_code = status_code
        mock.json.return_value = data
        mock.text = str(data)
        return mock

    return _make
