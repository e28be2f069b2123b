"""
Repository layer for chat persistence and request accounting.

Design principles:
- Functions do NOT commit - caller commits for transaction control
- Returns None or raises exceptions on errors
- Uses SQLAlchemy Core (insert/select/update/delete) not ORM
"""

import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from sqlalchemy import and_, delete, desc, func, insert, select, update
from sqlalchemy.orm import Session

from db.tables import chats, messages, request_logs, utcnow
from utils.logger import get_logger

logger = get_logger(__name__)


class ChatOwnershipError(Exception):
    """A chat id already exists and belongs to a different user."""


# ============================================================================
# CHATS
# ============================================================================


def _message_ids(messages_list: list[dict[str, Any]]) -> list[str]:
    """Client ids where present and unique within the chat, fresh uuids otherwise."""
    seen: set[str] = set()
    ids = []
    for message in messages_list:
        message_id = message.get("id")
        if not message_id or message_id in seen:
            message_id = str(uuid.uuid4())
        seen.add(message_id)
        ids.append(message_id)
    return ids


def upsert_chat(
    db: Session,
    *,
    user_id: str,
    chat_id: str,
    title: str,
    messages_list: list[dict[str, Any]],
) -> None:
    """
    Create a chat or replace all of its messages.

    Args:
        db: Database session
        user_id: Owner of the chat
        chat_id: Client-chosen chat id
        title: Chat title
        messages_list: Full message history; each message needs `role` and `parts`

    Raises:
        ChatOwnershipError: If chat_id exists and belongs to another user

    Note:
        Does NOT commit. Caller must commit.
    """
    existing = db.execute(select(chats.c.user_id).where(chats.c.id == chat_id)).first()
    now = utcnow()

    if existing:
        if existing.user_id != user_id:
            raise ChatOwnershipError(
                f"Chat with id {chat_id} already exists and belongs to a different user"
            )
        db.execute(delete(messages).where(messages.c.chat_id == chat_id))
        db.execute(update(chats).where(chats.c.id == chat_id).values(title=title, updated_at=now))
    else:
        db.execute(
            insert(chats).values(id=chat_id, user_id=user_id, title=title, created_at=now, updated_at=now)
        )

    if messages_list:
        db.execute(
            insert(messages),
            [
                {
                    "id": message_id,
                    "chat_id": chat_id,
                    "role": message["role"],
                    "parts": message.get("parts") or [],
                    "position": index,
                    "created_at": now,
                }
                for index, (message_id, message) in enumerate(zip(_message_ids(messages_list), messages_list))
            ],
        )

    logger.debug(
        f"Upserted chat {chat_id}",
        extra={"extra_fields": {"chat_id": chat_id, "message_count": len(messages_list)}},
    )


def get_chat(db: Session, chat_id: str, user_id: str) -> dict[str, Any] | None:
    """
    Get a chat with its messages in order.

    Returns:
        dict: Chat row plus `messages` ([{id, role, parts}]), or None when the
        chat does not exist or belongs to someone else
    """
    row = db.execute(
        select(chats).where(and_(chats.c.id == chat_id, chats.c.user_id == user_id))
    ).first()
    if row is None:
        return None

    message_rows = db.execute(
        select(messages.c.id, messages.c.role, messages.c.parts)
        .where(messages.c.chat_id == chat_id)
        .order_by(messages.c.position)
    ).all()

    chat = dict(row._mapping)
    chat["messages"] = [
        {"id": message.id, "role": message.role, "parts": message.parts} for message in message_rows
    ]
    return chat


def get_chats(db: Session, user_id: str) -> list[dict[str, Any]]:
    """List a user's chats, most recently updated first."""
    rows = db.execute(
        select(chats).where(chats.c.user_id == user_id).order_by(desc(chats.c.updated_at))
    ).all()
    return [dict(row._mapping) for row in rows]


# ============================================================================
# REQUEST ACCOUNTING
# ============================================================================


def get_day_bounds(day: date | datetime) -> tuple[datetime, datetime]:
    """UTC [start, end) of the calendar day containing `day`."""
    if isinstance(day, datetime):
        if day.tzinfo is not None:
            day = day.astimezone(timezone.utc)
        day = day.date()
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def insert_request_log(db: Session, user_id: str, created_at: datetime | None = None) -> None:
    """
    Record one chat request for daily quota accounting.

    Note:
        Does NOT commit. Caller must commit.
    """
    db.execute(insert(request_logs).values(user_id=user_id, created_at=created_at or utcnow()))


def get_daily_request_count(db: Session, user_id: str, day: date | datetime | None = None) -> int:
    """Count a user's requests on the UTC day containing `day` (default: today)."""
    start, end = get_day_bounds(day or utcnow())
    stmt = select(func.count()).select_from(request_logs).where(
        and_(
            request_logs.c.user_id == user_id,
            request_logs.c.created_at >= start,
            request_logs.c.created_at < end,
        )
    )
    return int(db.execute(stmt).scalar_one())
