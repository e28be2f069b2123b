"""
Fixed-window request limiter on top of a CounterStore.

Key guarantees:
- All callers inside one wall-clock aligned window share one counter key
- Counter reads fail open: a broken store never blocks traffic
- Counter writes raise StoreError so callers know the hit was not recorded
- retry() waits for window boundaries and never re-checks more than max_retries times
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from functools import partial

from ratelimit.counter_store import CounterStore, StoreError, expiry_seconds
from ratelimit.window import DEFAULT_KEY_PREFIX, RateLimitWindow, get_window
from utils.clock import SYSTEM_CLOCK, Clock
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_RETRIES = 3


@dataclass(frozen=True)
class RateLimitConfig:
    max_requests: int
    window_ms: int
    key_prefix: str = DEFAULT_KEY_PREFIX
    max_retries: int = DEFAULT_MAX_RETRIES

    def __post_init__(self):
        if self.max_requests <= 0:
            raise ValueError(f"max_requests must be positive, got {self.max_requests}")
        if self.window_ms <= 0:
            raise ValueError(f"window_ms must be positive, got {self.window_ms}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")

    def for_user(self, user_id: str) -> "RateLimitConfig":
        """Same limits, counted under a per-user key namespace."""
        return RateLimitConfig(
            max_requests=self.max_requests,
            window_ms=self.window_ms,
            key_prefix=f"{self.key_prefix}:{user_id}",
            max_retries=self.max_retries,
        )


async def _always_allowed() -> bool:
    return True


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_time: int
    total_hits: int
    retry: Callable[[], Awaitable[bool]] = field(default=_always_allowed, compare=False, repr=False)

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "remaining": self.remaining,
            "resetTime": self.reset_time,
            "totalHits": self.total_hits,
        }


class RateLimiter:
    def __init__(self, store: CounterStore, clock: Clock = SYSTEM_CLOCK):
        self._store = store
        self._clock = clock

    @property
    def clock(self) -> Clock:
        return self._clock

    def _window(self, window_ms: int, key_prefix: str) -> RateLimitWindow:
        return get_window(self._clock.now_ms(), window_ms, key_prefix)

    async def record_hit(self, window_ms: int, key_prefix: str = DEFAULT_KEY_PREFIX) -> None:
        """
        Count one request against the current window.

        Raises:
            StoreError: If the increment+expire pipeline could not be confirmed.
                The request must then be treated as "unknown state", not as admitted.
        """
        window = self._window(window_ms, key_prefix)

        try:
            new_count = await self._store.increment_and_expire(window.key, expiry_seconds(window_ms))
            if new_count is None:
                raise StoreError("Counter store pipeline execution failed")
        except Exception as e:
            logger.error(
                f"Rate limit recording failed: {e}",
                extra={
                    "extra_fields": {
                        "key": window.key,
                        "window_start": window.window_start,
                        "error_type": type(e).__name__,
                    }
                },
            )
            if isinstance(e, StoreError):
                raise
            raise StoreError(str(e)) from e

        logger.debug(
            "Rate limit hit recorded",
            extra={"extra_fields": {"key": window.key, "count": new_count}},
        )

    async def check_limit(self, config: RateLimitConfig) -> RateLimitResult:
        """
        Read the current window's counter and decide admission.

        Never raises for store failures: an unreadable counter admits the request.
        """
        window = self._window(config.window_ms, config.key_prefix)
        reset_time = window.window_start + config.window_ms

        try:
            raw_count = await self._store.get(window.key)
            count = int(raw_count) if raw_count else 0
        except Exception as e:
            logger.error(
                f"Rate limit check failed, failing open: {e}",
                extra={
                    "extra_fields": {
                        "key": window.key,
                        "window_start": window.window_start,
                        "error_type": type(e).__name__,
                    }
                },
            )
            return RateLimitResult(
                allowed=True,
                remaining=config.max_requests - 1,
                reset_time=reset_time,
                total_hits=0,
            )

        allowed = count < config.max_requests
        result = RateLimitResult(
            allowed=allowed,
            remaining=max(0, config.max_requests - count),
            reset_time=reset_time,
            total_hits=count,
        )
        if allowed:
            return result

        # Denied results carry a retry bound to this config and this first reset time
        return replace(result, retry=partial(self.wait_for_slot, config, result))

    async def wait_for_slot(self, config: RateLimitConfig, result: RateLimitResult) -> bool:
        """
        Sleep until the window resets and check again, at most max_retries times.

        Args:
            config: Limits to re-check with
            result: The denied result to start from

        Returns:
            True as soon as a re-check admits, False once the re-checks are spent
        """
        if result.allowed:
            return True

        current = result
        for attempt in range(1, config.max_retries + 1):
            wait_ms = current.reset_time - self._clock.now_ms()
            if wait_ms > 0:
                await self._clock.sleep(wait_ms / 1000)

            current = await self.check_limit(config)
            if current.allowed:
                logger.info(
                    "Rate limit slot acquired after waiting",
                    extra={"extra_fields": {"key_prefix": config.key_prefix, "attempt": attempt}},
                )
                return True

        logger.warning(
            "Rate limit retries exhausted",
            extra={
                "extra_fields": {
                    "key_prefix": config.key_prefix,
                    "max_retries": config.max_retries,
                    "total_hits": current.total_hits,
                }
            },
        )
        return False

    async def close(self) -> None:
        await self._store.close()
