"""Pydantic schemas for chat, history and context endpoints."""

from __future__ import annotations

from pydantic import Field

from backend.api.schemas.common import ApiModel


class ChatRequest(ApiModel):
    """A user message for one session."""

    session_id: str = ""
    message: str = ""


class ChatResponse(ApiModel):
    """The assistant's reply."""

    reply: str


class ChatTurnSchema(ApiModel):
    """A single message in the conversation log."""

    role: str  # "user" or "assistant"
    content: str


class HistoryResponse(ApiModel):
    """The stored conversation log, oldest first."""

    history: list[ChatTurnSchema]


class ContextResponse(ApiModel):
    """The session's merged analytical context."""

    context: dict[str, object] = Field(default_factory=dict)
