"""Liveness plus a database readiness probe."""

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from server.dependencies import get_session_factory
from server.schemas.responses import HealthResponseDTO
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


def _ping_database(session_factory: Callable[[], Session]) -> str:
    try:
        with session_factory() as db:
            db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}", extra={"extra_fields": {"error_type": type(e).__name__}})
        return "unavailable"
    return "ok"


@router.get("/health", response_model=HealthResponseDTO)
async def health_check(
    request: Request,
    response: Response,
    session_factory: Callable[[], Session] = Depends(get_session_factory),
):
    """Reports 503 with status "degraded" when the chat database cannot be reached."""
    checks = {"database": await asyncio.to_thread(_ping_database, session_factory)}
    healthy = all(result == "ok" for result in checks.values())
    if not healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponseDTO(
        status="healthy" if healthy else "degraded",
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        version=request.app.version,
        checks=checks,
    )
