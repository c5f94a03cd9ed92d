"""
tests/test_cache.py
────────────────────
Unit tests for :class:`data_engine.cache.TTLCache`.

No network, no event loop — the clock is advanced by hand.
"""

import pytest

from data_engine.cache import CacheEntry, TTLCache


class TestTTLCache:
    """Freshness window, stale retention and replacement."""

    def test_get_missing_key_returns_none(self, market_cache) -> None:
        assert market_cache.get("top") is None
        assert "top" not in market_cache

    def test_put_stamps_entry_with_clock(self, market_cache, clock) -> None:
        entry = market_cache.put("top", [1, 2, 3])
        assert entry == CacheEntry(payload=[1, 2, 3], cached_at=clock.now)
        assert market_cache.get("top") is entry

    def test_fresh_inside_window(self, market_cache, clock) -> None:
        entry = market_cache.put("top", [])
        clock.advance(29.9)
        assert market_cache.is_fresh(entry)

    def test_stale_at_window_boundary(self, market_cache, clock) -> None:
        """``now - cached_at < ttl`` — exactly ttl seconds old is stale."""
        entry = market_cache.put("top", [])
        clock.advance(30.0)
        assert not market_cache.is_fresh(entry)

    def test_stale_entries_are_kept(self, market_cache, clock) -> None:
        """Expiry never removes data; it stays available as a fallback."""
        market_cache.put("top", ["old"])
        clock.advance(3600)
        entry = market_cache.get("top")
        assert entry is not None
        assert entry.payload == ["old"]

    def test_put_replaces_entry_wholesale(self, market_cache, clock) -> None:
        first = market_cache.put("top", {"a": 1})
        clock.advance(45)
        second = market_cache.put("top", {"b": 2})
        assert market_cache.get("top") is second
        assert second.payload == {"b": 2}
        assert second.cached_at > first.cached_at
        assert len(market_cache) == 1

    def test_explicit_ttl_overrides_default(self, market_cache, clock) -> None:
        entry = market_cache.put("top", [])
        clock.advance(10)
        assert not market_cache.is_fresh(entry, ttl=5)
        assert market_cache.is_fresh(entry, ttl=15)

    def test_entries_are_immutable(self, market_cache) -> None:
        entry = market_cache.put("top", [])
        with pytest.raises(AttributeError):
            entry.cached_at = 0  # type: ignore[misc]

    def test_clear(self, market_cache) -> None:
        market_cache.put("a", 1)
        market_cache.put("b", 2)
        market_cache.clear()
        assert len(market_cache) == 0


class TestCapacityBound:
    """Least-recently-used eviction once ``max_entries`` is exceeded."""

    def test_unbounded_by_default(self, clock) -> None:
        cache = TTLCache(ttl=30, clock=clock)
        for i in range(1000):
            cache.put(f"k{i}", i)
        assert len(cache) == 1000

    def test_zero_means_unbounded(self, clock) -> None:
        cache = TTLCache(ttl=30, max_entries=0, clock=clock)
        for i in range(10):
            cache.put(f"k{i}", i)
        assert len(cache) == 10

    def test_evicts_least_recently_used(self, clock) -> None:
        cache = TTLCache(ttl=30, max_entries=2, clock=clock)
        cache.put("top", "top-rows")
        cache.put("markets:bitcoin", "btc-rows")
        cache.get("top")  # touch → markets:bitcoin becomes the LRU key
        cache.put("markets:ethereum", "eth-rows")

        assert "top" in cache
        assert "markets:ethereum" in cache
        assert "markets:bitcoin" not in cache
