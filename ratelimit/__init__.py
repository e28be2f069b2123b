"""
Per-user admission control: window keys, counter stores and the limiter.
"""

from .admission import AdmissionDecision, AdmissionGate
from .counter_store import (
    CounterStore,
    InMemoryCounterStore,
    RedisCounterStore,
    StoreError,
    create_counter_store,
)
from .limiter import RateLimitConfig, RateLimiter, RateLimitResult
from .window import DEFAULT_KEY_PREFIX, RateLimitWindow, get_window

__all__ = [
    "DEFAULT_KEY_PREFIX",
    "AdmissionDecision",
    "AdmissionGate",
    "CounterStore",
    "InMemoryCounterStore",
    "RateLimitConfig",
    "RateLimitResult",
    "RateLimitWindow",
    "RateLimiter",
    "RedisCounterStore",
    "StoreError",
    "create_counter_store",
    "get_window",
]
