"""
Unit tests for the in-memory token cache.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from yado_booking.cache import TokenCache


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2026, 5, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.mark.unit
def test_token_served_until_margin_before_expiry() -> None:
    """Test that a token lapses margin_seconds before its issued expiry."""
    clock = FakeClock()
    cache = TokenCache(margin_seconds=300, clock=clock)
    cache.set("cli_123", "t-abc", expires_in=7200)

    clock.advance(7200 - 301)
    assert cache.get("cli_123") == "t-abc"

    clock.advance(1)
    assert cache.get("cli_123") is None
    assert cache.size() == 0


@pytest.mark.unit
def test_invalidate_and_clear() -> None:
    """Test explicit removal of entries."""
    cache = TokenCache()
    cache.set("a", "t-a", 7200)
    cache.set("b", "t-b", 7200)

    cache.invalidate("a")
    assert cache.get("a") is None
    assert cache.get("b") == "t-b"

    cache.clear()
    assert cache.size() == 0


@pytest.mark.unit
def test_short_lifetime_is_never_served() -> None:
    """Test that a lifetime shorter than the margin is treated as already expired."""
    cache = TokenCache(margin_seconds=300, clock=FakeClock())
    cache.set("cli_123", "t-abc", expires_in=120)

    assert cache.get("cli_123") is None
