"""Thread-safe TTL cache for search responses and crawled pages."""

import hashlib
import json
import threading
from typing import Any

from utils.clock import SYSTEM_CLOCK, Clock


class InMemoryTTLCache:
    """
    In-memory cache with a per-entry time to live.

    Keys are sha256 digests of a namespace plus the JSON-encoded call arguments,
    so the same cache instance can serve several tools.
    """

    def __init__(self, ttl_seconds: int, max_entries: int = 1000, clock: Clock = SYSTEM_CLOCK):
        self._entries: dict[str, tuple[Any, int]] = {}  # key -> (value, expires_at_ms)
        self._lock = threading.Lock()
        self._ttl_ms = ttl_seconds * 1000
        self._max_entries = max_entries
        self._clock = clock

    @staticmethod
    def make_key(namespace: str, *parts: Any) -> str:
        encoded = json.dumps([namespace, *parts], sort_keys=True, default=str)
        return hashlib.sha256(encoded.encode("utf-8")).hexdigest()[:32]

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock.now_ms() < expires_at:
                return value
            del self._entries[key]
            return None

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            if len(self._entries) >= self._max_entries and key not in self._entries:
                # Drop the entry closest to expiry
                oldest = min(self._entries, key=lambda k: self._entries[k][1])
                del self._entries[oldest]
            self._entries[key] = (value, self._clock.now_ms() + self._ttl_ms)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
