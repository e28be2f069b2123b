"""Wall-clock aligned window keys for the request counter."""

from dataclasses import dataclass

DEFAULT_KEY_PREFIX = "rate_limit"


@dataclass(frozen=True)
class RateLimitWindow:
    key: str
    window_start: int


def get_window(now_ms: int, window_ms: int, key_prefix: str = DEFAULT_KEY_PREFIX) -> RateLimitWindow:
    """
    Map a timestamp onto its window bucket.

    Every timestamp inside [window_start, window_start + window_ms) yields the same key,
    regardless of which caller computes it.

    Args:
        now_ms: Current time in epoch milliseconds
        window_ms: Window length in milliseconds (must be positive)
        key_prefix: Namespace for the counter key

    Returns:
        RateLimitWindow with the counter key and the window start timestamp
    """
    if window_ms <= 0:
        raise ValueError(f"window_ms must be positive, got {window_ms}")

    window_start = (now_ms // window_ms) * window_ms
    return RateLimitWindow(key=f"{key_prefix}:{window_start}", window_start=window_start)
