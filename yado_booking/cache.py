"""
In-memory token cache with per-entry expiry.

Lark tenant access tokens come with their own lifetime (``expire`` seconds),
so each entry stores the expiry it was issued with instead of a cache-wide TTL.
Entries are considered expired ``margin_seconds`` early so a token is never
handed out moments before Lark rejects it.

For deployments with several instances each process keeps its own cache; that
only costs one extra token exchange per process.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Callable


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenCache:
    """
    In-memory token cache keyed by app id.

    Attributes:
        margin: Safety margin subtracted from every issued lifetime
        _cache: Internal storage mapping key to (token, expires_at) tuples

    Example:
        >>> cache = TokenCache(margin_seconds=300)
        >>> cache.set("cli_a1b2", "t-abc", expires_in=7200)
        >>> cache.get("cli_a1b2")
        't-abc'
        >>> cache.invalidate("cli_a1b2")
    """

    def __init__(self, margin_seconds: int = 300, clock: Callable[[], datetime] = _utc_now):
        """
        Initialize the cache.

        Args:
            margin_seconds: Seconds before the issued expiry at which entries lapse
            clock: Source of the current UTC time (injectable for tests)
        """
        self.margin = timedelta(seconds=margin_seconds)
        self._clock = clock
        self._cache: dict[str, tuple[str, datetime]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        """
        Get cached token if not expired.

        Returns:
            Cached token string if found and not expired, None otherwise
        """
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            token, expires_at = entry
            if self._clock() < expires_at:
                return token
            del self._cache[key]
            return None

    def set(self, key: str, token: str, expires_in: int) -> None:
        """
        Cache a token for its issued lifetime minus the safety margin.

        Args:
            key: Cache key (the app id)
            token: Access token to cache
            expires_in: Lifetime in seconds as reported by the issuer
        """
        expires_at = self._clock() + timedelta(seconds=expires_in) - self.margin
        with self._lock:
            self._cache[key] = (token, expires_at)

    def invalidate(self, key: str) -> None:
        """Remove a token, e.g. after the backend rejected it."""
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._cache)
