"""
Table definitions for chat persistence and request accounting.

Unlike a reflected schema, these tables are declared here and created by
init_db(), so a fresh SQLite file works out of the box.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Engine,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
)

from db.engine import get_engine
from utils.logger import get_logger

logger = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


metadata = MetaData()

chats = Table(
    "chats",
    metadata,
    Column("id", String(255), primary_key=True),
    Column("user_id", String(64), nullable=False, index=True),
    Column("title", String(255), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    Column("updated_at", DateTime(timezone=True), nullable=False, default=utcnow),
)

# Message ids come from the client, so they are only unique within their chat
messages = Table(
    "messages",
    metadata,
    Column(
        "chat_id",
        String(255),
        ForeignKey("chats.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
    Column("id", String(255), primary_key=True),
    Column("role", String(32), nullable=False),
    Column("parts", JSON, nullable=False),
    Column("position", Integer, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
)

request_logs = Table(
    "request_logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(64), nullable=False, index=True),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
)

TABLE_NAMES = ["chats", "messages", "request_logs"]


def get_table(name: str) -> Table:
    """
    Raises:
        ValueError: If table name is not recognized
    """
    if name not in metadata.tables:
        raise ValueError(f"Unknown table name: {name}. Available tables: {', '.join(TABLE_NAMES)}")
    return metadata.tables[name]


def init_db(engine: Engine | None = None) -> None:
    """Create any missing tables."""
    engine = engine or get_engine()
    metadata.create_all(engine)
    logger.info(f"Database ready ({len(TABLE_NAMES)} tables)")
