"""
Database package.
Provides SQLAlchemy engine, session management, table definitions and repository functions.
"""

from db.engine import dispose_engine, get_engine
from db.repository import (
    ChatOwnershipError,
    get_chat,
    get_chats,
    get_daily_request_count,
    get_day_bounds,
    insert_request_log,
    upsert_chat,
)
from db.session import SessionLocal, get_db
from db.tables import get_table, init_db, metadata

__all__ = [
    "ChatOwnershipError",
    "SessionLocal",
    "dispose_engine",
    "get_chat",
    "get_chats",
    "get_daily_request_count",
    "get_day_bounds",
    "get_db",
    "get_engine",
    "get_table",
    "init_db",
    "insert_request_log",
    "metadata",
    "upsert_chat",
]
