"""Pydantic response models (DTOs) for FastAPI endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class HealthResponseDTO(BaseModel):
    status: str
    timestamp: str
    version: str
    checks: dict[str, str] = Field(default_factory=dict)


class ChatSummaryDTO(BaseModel):
    id: str
    title: str
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ChatSummaryDTO":
        return cls(
            id=row["id"],
            title=row["title"],
            createdAt=row["created_at"],
            updatedAt=row["updated_at"],
        )


class ChatMessageDTO(BaseModel):
    id: str
    role: str
    parts: list[dict[str, Any]] = Field(default_factory=list)


class ChatDetailDTO(ChatSummaryDTO):
    messages: list[ChatMessageDTO] = Field(default_factory=list)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ChatDetailDTO":
        return cls(
            id=row["id"],
            title=row["title"],
            createdAt=row["created_at"],
            updatedAt=row["updated_at"],
            messages=[ChatMessageDTO(**message) for message in row.get("messages", [])],
        )
