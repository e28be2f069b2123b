import os
from pathlib import Path

from dotenv import load_dotenv

from utils.logger import get_logger

logger = get_logger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}: {raw!r}, using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid number for {name}: {raw!r}, using {default}")
        return default


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() == "true"


def _env_list(name: str) -> list[str]:
    return [item.strip() for item in os.getenv(name, "").split(",") if item.strip()]


class Config:
    """Configuration management for the application."""

    def __init__(self):
        """Initialize configuration with environment variables."""
        env_path = Path(__file__).parent.parent / ".env"
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)

        # Reasoning engine
        self.OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
        self.OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL") or None
        self.DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "gpt-4o-mini")
        self.FACTUALITY_MODEL = os.getenv("FACTUALITY_MODEL", self.DEFAULT_MODEL)
        self.AGENT_STEP_LIMIT = _env_int("AGENT_STEP_LIMIT", 8)

        # Retrieval
        self.SERPER_API_KEY = os.getenv("SERPER_API_KEY")
        self.SEARCH_RESULTS_COUNT = _env_int("SEARCH_RESULTS_COUNT", 10)
        self.SCRAPE_URLS_COUNT = _env_int("SCRAPE_URLS_COUNT", 5)
        self.SEARCH_CACHE_TTL_SECONDS = _env_int("SEARCH_CACHE_TTL_SECONDS", 6 * 60 * 60)
        self.CRAWL_CACHE_TTL_SECONDS = _env_int("CRAWL_CACHE_TTL_SECONDS", 6 * 60 * 60)
        self.CRAWL_MAX_CONCURRENCY = _env_int("CRAWL_MAX_CONCURRENCY", 6)
        self.CRAWL_MAX_RETRIES = _env_int("CRAWL_MAX_RETRIES", 3)
        self.CRAWL_TIMEOUT_S = _env_float("CRAWL_TIMEOUT_S", 15.0)

        # Admission control
        self.RATE_LIMIT_MAX_REQUESTS = _env_int("RATE_LIMIT_MAX_REQUESTS", 5)
        self.RATE_LIMIT_WINDOW_MS = _env_int("RATE_LIMIT_WINDOW_MS", 60_000)
        self.RATE_LIMIT_KEY_PREFIX = os.getenv("RATE_LIMIT_KEY_PREFIX", "rate_limit")
        self.RATE_LIMIT_MAX_RETRIES = _env_int("RATE_LIMIT_MAX_RETRIES", 3)
        self.RATE_LIMIT_WAIT = _env_flag("RATE_LIMIT_WAIT")
        self.REDIS_URL = os.getenv("REDIS_URL") or None
        self.REQUESTS_PER_DAY_LIMIT = _env_int("REQUESTS_PER_DAY_LIMIT", 0)

        # Persistence and auth
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///deepsearch.db")
        self.API_KEYS = _env_list("API_KEYS")
        self.ADMIN_API_KEYS = _env_list("ADMIN_API_KEYS")

        self.TELEMETRY_ENABLED = _env_flag("TELEMETRY_ENABLED")

    def validate(self) -> bool:
        """
        Validate that everything needed to answer questions is configured.

        Returns:
            bool: True if configuration is valid, False otherwise
        """
        problems = []
        if not self.OPENAI_API_KEY:
            problems.append("OPENAI_API_KEY is not set")
        if not self.SERPER_API_KEY:
            problems.append("SERPER_API_KEY is not set")
        if self.AGENT_STEP_LIMIT < 1:
            problems.append("AGENT_STEP_LIMIT must be at least 1")
        if self.RATE_LIMIT_MAX_REQUESTS < 1 or self.RATE_LIMIT_WINDOW_MS < 1:
            problems.append("RATE_LIMIT_MAX_REQUESTS and RATE_LIMIT_WINDOW_MS must be positive")
        if self.CRAWL_MAX_CONCURRENCY < 1:
            problems.append("CRAWL_MAX_CONCURRENCY must be at least 1")

        for problem in problems:
            logger.error(f"Configuration error: {problem}")
        return not problems

    def all_api_keys(self) -> list[str]:
        """Admin keys authenticate too, even when they are not repeated in API_KEYS."""
        return list(dict.fromkeys(self.API_KEYS + self.ADMIN_API_KEYS))

    def get_model_info(self) -> str:
        return f"OpenAI-compatible ({self.DEFAULT_MODEL}, {self.AGENT_STEP_LIMIT} steps)"
