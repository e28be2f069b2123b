"""FastAPI dependencies for authentication, admission control and agent access."""

from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from config.config import Config
from db.session import SessionLocal
from orchestrator.agent_loop import AgentLoop
from ratelimit import AdmissionGate, RateLimitConfig, RateLimiter, create_counter_store
from server.utils import redact_sensitive_headers
from utils.api_key_utils import match_api_key, user_id_for_api_key
from utils.clock import SYSTEM_CLOCK
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: str
    is_admin: bool = False


def get_config() -> Config:
    """Dependency to get the configuration (singleton pattern)."""
    if not hasattr(get_config, "_instance"):
        get_config._instance = Config()
    return get_config._instance


async def get_api_key(
    request: Request,
    x_api_key: str | None = Header(None),
    config: Config = Depends(get_config),
) -> AuthenticatedUser:
    """Validate the X-API-Key header and resolve the caller."""
    request_id = getattr(request.state, "request_id", "unknown")
    redacted_headers = redact_sensitive_headers(dict(request.headers))
    valid_keys = config.all_api_keys()

    if not valid_keys:
        logger.error(
            "API authentication not configured",
            extra={"extra_fields": {"request_id": request_id, "headers": redacted_headers}},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="API authentication not configured",
        )

    matched_key = match_api_key(x_api_key, valid_keys)
    if matched_key is None:
        logger.warning(
            "API authentication failed",
            extra={"extra_fields": {"request_id": request_id, "headers": redacted_headers}},
        )
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    return AuthenticatedUser(
        user_id=user_id_for_api_key(matched_key),
        is_admin=match_api_key(matched_key, config.ADMIN_API_KEYS) is not None,
    )


def get_session_factory() -> Callable[[], Session]:
    """Sessions are opened per unit of work so the stream can persist after the request scope."""
    return SessionLocal


def get_agent_loop(config: Config = Depends(get_config)) -> AgentLoop:
    """Dependency to get the agent loop (singleton pattern)."""
    from orchestrator.deep_search import create_agent_loop

    if not hasattr(get_agent_loop, "_instance"):
        get_agent_loop._instance = create_agent_loop(config)
    return get_agent_loop._instance


def get_admission_gate(config: Config = Depends(get_config)) -> AdmissionGate:
    """Dependency to get the admission gate (singleton pattern)."""
    if not hasattr(get_admission_gate, "_instance"):
        store = create_counter_store(config.REDIS_URL, SYSTEM_CLOCK)
        limit = RateLimitConfig(
            max_requests=config.RATE_LIMIT_MAX_REQUESTS,
            window_ms=config.RATE_LIMIT_WINDOW_MS,
            key_prefix=config.RATE_LIMIT_KEY_PREFIX,
            max_retries=config.RATE_LIMIT_MAX_RETRIES,
        )
        get_admission_gate._instance = AdmissionGate(
            RateLimiter(store, SYSTEM_CLOCK),
            limit,
            wait_for_slot=config.RATE_LIMIT_WAIT,
        )
    return get_admission_gate._instance


async def close_singletons() -> None:
    """Release network clients held by the singletons; called on shutdown."""
    if hasattr(get_agent_loop, "_instance"):
        loop = get_agent_loop._instance
        await loop.engine.aclose()
        await loop.tools.aclose()
        del get_agent_loop._instance
    if hasattr(get_admission_gate, "_instance"):
        await get_admission_gate._instance.limiter.close()
        del get_admission_gate._instance
