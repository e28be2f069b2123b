"""Pydantic request models for FastAPI endpoints."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    """A UI chat message; either `parts` or legacy `content` may be populated."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    role: Literal["user", "assistant", "system", "tool"]
    parts: list[dict[str, Any]] | None = None
    content: str | list[dict[str, Any]] | None = None


class ChatRequest(BaseModel):
    messages: list[ChatMessage] = Field(..., min_length=1)
    chatId: str = Field(..., min_length=1, max_length=255)
    isNewChat: bool = False
