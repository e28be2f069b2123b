"""API keys: generation, hashing to stable user ids, and matching against configured keys."""

import hashlib
import hmac
import secrets
from collections.abc import Iterable

USER_ID_CHARS = 32


def compute_api_key_hash(api_key: str) -> str:
    """Return SHA-256 hex hash for an API key."""
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


def user_id_for_api_key(api_key: str) -> str:
    """The caller's stable user id; raw keys never reach logs, counters or the database."""
    return compute_api_key_hash(api_key)[:USER_ID_CHARS]


def match_api_key(candidate: str | None, valid_keys: Iterable[str]) -> str | None:
    """
    Find the configured key equal to `candidate`.

    Every configured key is compared in constant time, so response timing does
    not reveal how much of a key was right.
    """
    if not candidate:
        return None
    matched = None
    for key in valid_keys:
        if hmac.compare_digest(candidate.encode("utf-8"), key.encode("utf-8")):
            matched = key
    return matched


def generate_api_key(prefix: str = "deepsearch") -> str:
    """Generate a random API key string with prefix."""
    safe_prefix = (prefix or "deepsearch").strip().lower().replace(" ", "-")
    return f"{safe_prefix}_{secrets.token_urlsafe(32)}"
