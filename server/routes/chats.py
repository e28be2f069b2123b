"""Chat history endpoints."""

import asyncio
from collections.abc import Callable
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from db.repository import get_chat, get_chats
from server.dependencies import AuthenticatedUser, get_api_key, get_session_factory
from server.schemas.responses import ChatDetailDTO, ChatSummaryDTO

router = APIRouter(prefix="/api", tags=["Chats"])


def _load_chats(session_factory: Callable[[], Session], user_id: str) -> list[dict[str, Any]]:
    with session_factory() as db:
        return get_chats(db, user_id)


def _load_chat(session_factory: Callable[[], Session], chat_id: str, user_id: str) -> dict[str, Any] | None:
    with session_factory() as db:
        return get_chat(db, chat_id, user_id)


@router.get("/chats", response_model=list[ChatSummaryDTO])
async def list_chats(
    user: AuthenticatedUser = Depends(get_api_key),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    """Return the caller's chats, most recently updated first."""
    rows = await asyncio.to_thread(_load_chats, session_factory, user.user_id)
    return [ChatSummaryDTO.from_row(row) for row in rows]


@router.get("/chats/{chat_id}", response_model=ChatDetailDTO)
async def read_chat(
    chat_id: str,
    user: AuthenticatedUser = Depends(get_api_key),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    row = await asyncio.to_thread(_load_chat, session_factory, chat_id, user.user_id)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chat not found")
    return ChatDetailDTO.from_row(row)
