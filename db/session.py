"""
SQLAlchemy session management.
Provides get_db() dependency for FastAPI and SessionLocal() for scripts.

Engine binding happens lazily when the first session is created.
"""

from collections.abc import Generator

from sqlalchemy.orm import Session, sessionmaker

from db.engine import get_engine

# Session factory (unbound at import time)
_SessionFactory = sessionmaker(autocommit=False, autoflush=False)


def SessionLocal() -> Session:
    """
    Lazy session factory that binds the engine on first use.

    Usage:
        session = SessionLocal()
        try:
            ...
            session.commit()
        finally:
            session.close()
    """
    _SessionFactory.configure(bind=get_engine())
    return _SessionFactory()


def get_db() -> Generator[Session, None, None]:
    """
    Get a database session (FastAPI dependency).

    Yields:
        Session: SQLAlchemy session, closed when the request ends
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
