"""Counter stores backing the rate limiter.

The limiter only needs three primitives plus a pipelined increment+expire:
- RedisCounterStore for shared, multi-process deployments
- InMemoryCounterStore for a single process and for tests
"""

import math
import threading
from abc import ABC, abstractmethod

from utils.clock import SYSTEM_CLOCK, Clock
from utils.logger import get_logger

logger = get_logger(__name__)


class StoreError(Exception):
    """The counter store could not confirm an operation."""


class CounterStore(ABC):
    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the raw counter value, or None when the key does not exist."""

    @abstractmethod
    async def increment(self, key: str) -> int:
        """Atomically add one to the counter and return the new value."""

    @abstractmethod
    async def expire(self, key: str, seconds: int) -> bool:
        """Set the key's time to live. Returns False when the key does not exist."""

    @abstractmethod
    async def increment_and_expire(self, key: str, seconds: int) -> int | None:
        """
        Increment and (re)set expiry in one atomic round trip.

        Returns:
            The new counter value, or None when the store returned no result
        """

    async def close(self) -> None:
        return None


class InMemoryCounterStore(CounterStore):
    """
    Thread-safe in-process counters with expiry.

    Expiry is evaluated lazily against the injected clock.
    """

    def __init__(self, clock: Clock = SYSTEM_CLOCK):
        self._clock = clock
        self._values: dict[str, tuple[int, int | None]] = {}  # key -> (count, expires_at_ms)
        self._lock = threading.Lock()

    def _live_value(self, key: str) -> int | None:
        entry = self._values.get(key)
        if entry is None:
            return None
        count, expires_at = entry
        if expires_at is not None and self._clock.now_ms() >= expires_at:
            del self._values[key]
            return None
        return count

    async def get(self, key: str) -> str | None:
        with self._lock:
            count = self._live_value(key)
        return None if count is None else str(count)

    async def increment(self, key: str) -> int:
        with self._lock:
            return self._increment_locked(key)

    def _increment_locked(self, key: str) -> int:
        count = self._live_value(key)
        expires_at = self._values[key][1] if count is not None else None
        new_count = (count or 0) + 1
        self._values[key] = (new_count, expires_at)
        return new_count

    async def expire(self, key: str, seconds: int) -> bool:
        with self._lock:
            return self._expire_locked(key, seconds)

    def _expire_locked(self, key: str, seconds: int) -> bool:
        count = self._live_value(key)
        if count is None:
            return False
        self._values[key] = (count, self._clock.now_ms() + seconds * 1000)
        return True

    async def increment_and_expire(self, key: str, seconds: int) -> int | None:
        with self._lock:
            new_count = self._increment_locked(key)
            self._expire_locked(key, seconds)
            return new_count

    def clear(self) -> None:
        with self._lock:
            self._values.clear()


class RedisCounterStore(CounterStore):
    """Counters in Redis, using a MULTI/EXEC pipeline for increment+expire."""

    def __init__(self, url: str, client=None):
        if client is None:
            try:
                from redis.asyncio import Redis
            except ModuleNotFoundError as e:
                raise ModuleNotFoundError(
                    "Optional dependency 'redis' is not installed. "
                    "Install it to share rate limits across processes: pip install redis"
                ) from e
            client = Redis.from_url(url, decode_responses=True)
        self._client = client
        self._url = url

    async def get(self, key: str) -> str | None:
        value = await self._client.get(key)
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else str(value)

    async def increment(self, key: str) -> int:
        return int(await self._client.incr(key))

    async def expire(self, key: str, seconds: int) -> bool:
        return bool(await self._client.expire(key, seconds))

    async def increment_and_expire(self, key: str, seconds: int) -> int | None:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, seconds)
            results = await pipe.execute(raise_on_error=False)

        if not results:
            return None

        incr_result = results[0]
        if isinstance(incr_result, Exception):
            raise incr_result
        return int(incr_result)

    async def close(self) -> None:
        await self._client.aclose()


def expiry_seconds(window_ms: int) -> int:
    """Counter TTL covering a whole window, rounded up to whole seconds."""
    return math.ceil(window_ms / 1000)


def create_counter_store(redis_url: str | None, clock: Clock = SYSTEM_CLOCK) -> CounterStore:
    if redis_url:
        logger.info("Using Redis counter store for rate limiting")
        return RedisCounterStore(redis_url)
    logger.info("REDIS_URL not set; using in-memory counter store (single process only)")
    return InMemoryCounterStore(clock=clock)
