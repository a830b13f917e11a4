"""
Tests for the expiring cache.
"""

import threading
from datetime import timedelta

import pytest

from strata.infrastructure.caching import DEFAULT_TTL, CacheEntry, ExpiringCache


class TestExpiringCacheBasics:
    """Set, get, remove and clear."""

    def test_set_then_get(self, cache):
        cache.set("a", 1)
        assert cache.get("a") == 1
        assert cache.try_get("a") == (1, True)

    def test_missing_key(self, cache):
        assert cache.get("missing") is None
        assert cache.get("missing", "fallback") == "fallback"
        assert cache.try_get("missing") == (None, False)

    def test_set_replaces_value_and_ttl(self, cache, clock):
        cache.set("a", 1, ttl=5)
        cache.set("a", 2, ttl=100)
        clock.advance(50)
        assert cache.get("a") == 2

    def test_stored_none_is_distinguishable(self, cache):
        cache.set("a", None)
        assert cache.try_get("a") == (None, True)
        assert "a" in cache

    def test_remove(self, cache):
        cache.set("a", 1)
        cache.remove("a")
        cache.remove("never-set")
        assert cache.try_get("a") == (None, False)

    def test_clear(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()
        assert len(cache) == 0
        assert cache.get("a") is None

    def test_default_ttl_is_thirty_minutes(self):
        assert DEFAULT_TTL == timedelta(minutes=30)
        assert ExpiringCache().default_ttl == 1800


class TestExpiry:
    """Entries become invisible once their TTL has elapsed."""

    def test_entry_expires_at_deadline(self, cache, clock):
        cache.set("a", 1, ttl=10)
        clock.advance(9)
        assert cache.get("a") == 1
        clock.advance(1)
        assert cache.get("a") is None

    def test_default_ttl_applies(self, cache, clock):
        cache.set("a", 1)
        clock.advance(59)
        assert cache.get("a") == 1
        clock.advance(1)
        assert cache.get("a") is None

    def test_timedelta_ttl(self, cache, clock):
        cache.set("a", 1, ttl=timedelta(seconds=2))
        clock.advance(1)
        assert cache.get("a") == 1
        clock.advance(1)
        assert cache.get("a") is None

    def test_expired_entry_never_reappears(self, cache, clock):
        cache.set("a", 1, ttl=1)
        clock.advance(2)
        assert cache.get("a") is None
        # Going back in time cannot resurrect an evicted entry
        clock.now -= 10
        assert cache.get("a") is None

    def test_expired_entries_excluded_from_views(self, cache, clock):
        cache.set("short", 1, ttl=1)
        cache.set("long", 2, ttl=100)
        clock.advance(5)
        assert "short" not in cache
        assert cache.keys() == ["long"]
        assert cache.items() == [("long", 2)]
        assert list(cache) == ["long"]
        assert len(cache) == 1

    def test_purge_expired(self, cache, clock):
        cache.set("a", 1, ttl=1)
        cache.set("b", 2, ttl=1)
        cache.set("c", 3, ttl=100)
        clock.advance(2)
        assert cache.purge_expired() == 2
        assert cache.get_stats()["current_size"] == 1
        assert cache.purge_expired() == 0

    def test_cache_entry_is_expired(self):
        entry = CacheEntry(key="k", value="v", expires_at=10.0)
        assert not entry.is_expired(9.9)
        assert entry.is_expired(10.0)


class TestGetOrSet:

    def test_factory_called_once(self, cache):
        calls = []

        def factory():
            calls.append(1)
            return "computed"

        assert cache.get_or_set("k", factory) == "computed"
        assert cache.get_or_set("k", factory) == "computed"
        assert len(calls) == 1

    def test_factory_called_again_after_expiry(self, cache, clock):
        values = iter(["first", "second"])
        assert cache.get_or_set("k", lambda: next(values), ttl=1) == "first"
        clock.advance(1)
        assert cache.get_or_set("k", lambda: next(values), ttl=1) == "second"

    def test_factory_error_leaves_cache_unchanged(self, cache):
        def factory():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            cache.get_or_set("k", factory)
        assert "k" not in cache


def test_stats_track_hits_and_misses(cache, clock):
    cache.set("a", 1, ttl=1)
    cache.get("a")
    cache.get("b")
    clock.advance(1)
    cache.get("a")

    stats = cache.get_stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 2
    assert stats["evictions"] == 1
    assert stats["sets"] == 1
    assert stats["hit_rate"] == pytest.approx(1 / 3)


def test_concurrent_access_is_consistent():
    """Readers and writers on many threads never see a torn state."""
    cache = ExpiringCache(default_ttl=600)
    errors = []

    def writer(offset):
        try:
            for i in range(200):
                cache.set(f"key-{offset}-{i}", i)
                cache.remove(f"key-{offset}-{i - 1}")
        except Exception as e:
            errors.append(e)

    def reader():
        try:
            for _ in range(200):
                for key in cache.keys():
                    cache.get(key)
                len(cache)
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    threads += [threading.Thread(target=reader) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    # Each writer leaves only its last key behind
    assert sorted(cache.keys()) == sorted(f"key-{n}-199" for n in range(4))


def test_concurrent_get_or_set_computes_once():
    cache = ExpiringCache()
    calls = []
    barrier = threading.Barrier(8)

    def factory():
        calls.append(1)
        return "value"

    def worker():
        barrier.wait()
        assert cache.get_or_set("shared", factory) == "value"

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(calls) == 1
