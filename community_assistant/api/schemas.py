"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from community_assistant.sessions import DEFAULT_SESSION_ID, SESSION_ID_MAX_LENGTH


class ChatRequest(BaseModel):
    """Incoming prompt.  A missing or empty prompt is rejected with 400."""

    prompt: str | None = Field(None, description="The administrator's question")
    session_id: str = Field(
        DEFAULT_SESSION_ID,
        min_length=1,
        max_length=SESSION_ID_MAX_LENGTH,
        description="Conversation to continue; omit to use the shared default",
    )


class ChatResponse(BaseModel):
    response: str = Field(..., description="The assistant's final answer")
    prompt: str = Field(..., description="The prompt that was answered")


class ErrorResponse(BaseModel):
    error: str
    message: str | None = None


class ResetResponse(BaseModel):
    message: str = "Conversation history has been reset"
    timestamp: str


class HistoryEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    index: int
    role: str
    content: str = Field(..., description="Content preview, at most 100 characters plus '...'")
    has_tool_calls: bool = Field(..., alias="hasToolCalls")


class HistoryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message_count: int = Field(..., alias="messageCount")
    messages: list[HistoryEntry]


class HealthResponse(BaseModel):
    status: str = "healthy"
    timestamp: str
