"""Tests for the TTL cache with stale reads."""

import pytest

from tradeproxy.app.core.cache import CacheEntry, TtlCache

TTL = 60.0


class TestCacheEntry:
    """Tests for CacheEntry freshness."""

    def test_fresh_below_ttl(self):
        entry = CacheEntry(data=b"x", timestamp=100.0)
        assert entry.is_fresh(TTL, now=159.9)

    def test_stale_at_exactly_ttl(self):
        entry = CacheEntry(data=b"x", timestamp=100.0)
        assert not entry.is_fresh(TTL, now=160.0)

    def test_age(self):
        entry = CacheEntry(data=b"x", timestamp=100.0)
        assert entry.age(now=130.0) == 30.0


class TestTtlCache:
    """Tests for read_fresh, read_stale and write."""

    def test_write_then_read_fresh_round_trip(self, cache):
        payload = {"result": [{"id": "explicit", "entries": []}]}
        cache.write("stats:poe1", payload)

        entry = cache.read_fresh("stats:poe1", TTL)

        assert entry is not None
        assert entry.data is payload

    def test_read_fresh_never_written_is_miss(self, cache):
        assert cache.read_fresh("stats:poe1", TTL) is None
        assert cache.read_stale("stats:poe1") is None

    def test_write_records_clock_time(self, cache, clock):
        entry = cache.write("stats:poe1", "P")
        assert entry.timestamp == clock.now

    def test_read_fresh_misses_once_ttl_elapsed(self, cache, clock):
        cache.write("stats:poe1", "P")
        clock.advance(TTL)

        assert cache.read_fresh("stats:poe1", TTL) is None
        # The stale entry is still retained
        assert cache.read_stale("stats:poe1").data == "P"

    def test_staleness_is_idempotent_until_next_write(self, cache, clock):
        cache.write("stats:poe1", "P")
        clock.advance(TTL + 1)

        for _ in range(3):
            assert cache.read_fresh("stats:poe1", TTL) is None
            clock.advance(10)

        cache.write("stats:poe1", "Q")
        assert cache.read_fresh("stats:poe1", TTL).data == "Q"

    def test_read_stale_ignores_age(self, cache, clock):
        cache.write("stats:poe2", "P")
        clock.advance(7 * 24 * 60 * 60)

        entry = cache.read_stale("stats:poe2")
        assert entry.data == "P"
        assert entry.age(clock.now) == 7 * 24 * 60 * 60

    def test_write_replaces_entry(self, cache, clock):
        cache.write("stats:poe1", "P")
        clock.advance(5)
        cache.write("stats:poe1", "Q")

        entry = cache.read_stale("stats:poe1")
        assert entry.data == "Q"
        assert entry.timestamp == clock.now
        assert len(cache) == 1

    def test_keys_are_independent(self, cache):
        cache.write("stats:poe1", "P1")
        cache.write("stats:poe2", "P2")

        assert cache.read_fresh("stats:poe1", TTL).data == "P1"
        assert cache.read_fresh("stats:poe2", TTL).data == "P2"
        assert sorted(cache.keys()) == ["stats:poe1", "stats:poe2"]

    def test_clear(self, cache):
        cache.write("stats:poe1", "P")
        cache.clear()

        assert "stats:poe1" not in cache
        assert len(cache) == 0

    @pytest.mark.parametrize("ttl", [0.001, 24 * 60 * 60, 7 * 24 * 60 * 60])
    def test_fresh_immediately_after_write(self, ttl):
        cache = TtlCache(clock=lambda: 500.0)
        cache.write("stats:poe1", "P")
        assert cache.read_fresh("stats:poe1", ttl).data == "P"
