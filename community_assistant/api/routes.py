"""FastAPI route definitions for the Community Assistant API."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from community_assistant.agent import generate_response
from community_assistant.api.schemas import (
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    HealthResponse,
    HistoryEntry,
    HistoryResponse,
    ResetResponse,
)
from community_assistant.config import MAX_TOOL_ROUNDS
from community_assistant.sessions import (
    DEFAULT_SESSION_ID,
    SESSION_ID_MAX_LENGTH,
    SessionStore,
    Transcript,
)

logger = logging.getLogger(__name__)

router = APIRouter()

EXAMPLE_PROMPT = "Who are all the residents?"


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. ``2026-01-01T12:00:00.000Z``."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _get_agent(request: Request):
    """Retrieve the compiled conversation graph from app state."""
    agent = getattr(request.app.state, "agent", None)
    if agent is None:
        raise HTTPException(
            status_code=503,
            detail="The assistant is still starting up. Please try again in a moment.",
        )
    return agent


def _get_sessions(request: Request) -> SessionStore:
    sessions = getattr(request.app.state, "sessions", None)
    if sessions is None:
        raise HTTPException(
            status_code=503,
            detail="The assistant is still starting up. Please try again in a moment.",
        )
    return sessions


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Liveness check."""
    return HealthResponse(timestamp=utc_timestamp())


@router.post(
    "/chat",
    response_model=ChatResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def chat(request: ChatRequest, http_request: Request):
    """Answer a prompt, continuing the session's conversation.

    Requests on the same session are serialised by the session lock so that
    their messages never interleave in the transcript.
    """
    if not request.prompt:
        return JSONResponse(
            status_code=400,
            content={"error": "Prompt is required", "example": {"prompt": EXAMPLE_PROMPT}},
        )

    agent = _get_agent(http_request)
    session = _get_sessions(http_request).get(request.session_id)
    request_id = getattr(http_request.state, "request_id", "?")

    try:
        async with session.lock:
            reply = await generate_response(
                agent,
                session.transcript,
                request.prompt,
                max_tool_rounds=MAX_TOOL_ROUNDS,
            )
    except Exception as e:
        logger.exception("[%s] Error processing chat request", request_id)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "message": str(e)},
        )

    return ChatResponse(response=reply, prompt=request.prompt)


SessionIdQuery = Annotated[
    str,
    Query(
        min_length=1,
        max_length=SESSION_ID_MAX_LENGTH,
        description="Conversation to act on; omit to use the shared default",
    ),
]


@router.post("/reset", response_model=ResetResponse)
async def reset(http_request: Request, session_id: SessionIdQuery = DEFAULT_SESSION_ID):
    """Start the session's transcript over from the instruction message.

    Unknown sessions already hold only the instruction message, so they are
    left alone rather than created.
    """
    session = _get_sessions(http_request).find(session_id)
    if session is None:
        logger.info("Reset requested for unknown session %s; nothing to do", session_id)
    else:
        logger.info("Resetting conversation history for session %s", session_id)
        async with session.lock:
            session.transcript.reset()
    return ResetResponse(timestamp=utc_timestamp())


@router.get("/history", response_model=HistoryResponse)
async def history(http_request: Request, session_id: SessionIdQuery = DEFAULT_SESSION_ID):
    """Redacted view of the session's transcript, for debugging and monitoring.

    A session that has never been used reads as a fresh transcript.
    """
    session = _get_sessions(http_request).find(session_id)
    transcript = session.transcript if session is not None else Transcript()
    entries = [HistoryEntry(**entry) for entry in transcript.summary()]
    return HistoryResponse(message_count=len(entries), messages=entries)
