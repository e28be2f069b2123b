import pytest
from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from db.tables import metadata
from utils.clock import Clock

# Load environment variables from .env file for tests
load_dotenv()


class FakeClock(Clock):
    """Manual clock: sleep() advances time instantly and records the requested delays."""

    def __init__(self, now_ms: int = 0):
        self.current_ms = now_ms
        self.sleeps: list[float] = []

    def now_ms(self) -> int:
        return self.current_ms

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.current_ms += int(seconds * 1000)

    def advance(self, ms: int) -> None:
        self.current_ms += ms


@pytest.fixture
def clock():
    # Aligned to a 60s window boundary
    return FakeClock(now_ms=1_700_000_040_000)


@pytest.fixture
def session_factory():
    """In-memory SQLite shared across sessions, with all tables created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield factory
    engine.dispose()

