"""Tests for the TTL cache store."""

from __future__ import annotations

from conftest import FakeClock
from lending_history.services.cache_service import CacheService


def test_get_returns_fresh_value_and_misses_when_stale():
    clock = FakeClock()
    cache = CacheService(ttl_seconds=60, enabled=True, clock=clock)
    cache.set("k", "v")
    clock.advance(59)
    assert cache.get("k") == "v"
    clock.advance(1)
    # Exactly ttl old is already a miss
    assert cache.get("k") is None


def test_stale_value_remains_readable_until_swept():
    clock = FakeClock()
    cache = CacheService(ttl_seconds=10, enabled=True, clock=clock)
    cache.set("old", 1)
    clock.advance(5)
    cache.set("new", 2)
    clock.advance(6)

    assert cache.get("old") is None
    assert cache.get_stale("old") == 1
    assert cache.sweep() == 1
    assert cache.get_stale("old") is None
    assert cache.get("new") == 2
    assert len(cache) == 1


def test_set_replaces_entry_with_fresh_timestamp():
    clock = FakeClock()
    cache = CacheService(ttl_seconds=10, enabled=True, clock=clock)
    cache.set("k", "first")
    clock.advance(8)
    cache.set("k", "second")
    clock.advance(8)
    assert cache.get("k") == "second"


def test_disabled_cache_never_hits():
    cache = CacheService(ttl_seconds=10, enabled=False, clock=FakeClock())
    cache.set("k", "v")
    assert cache.get("k") is None
    assert cache.get_stale("k") is None


def test_make_key_is_stable_and_argument_sensitive():
    a = CacheService.make_key("summaries", "devnet", "acct", None, 10)
    b = CacheService.make_key("summaries", "devnet", "acct", None, 10)
    c = CacheService.make_key("summaries", "devnet", "acct", 5, 10)
    assert a == b
    assert a != c
    assert a.startswith("summaries:")


def test_delete_and_clear():
    cache = CacheService(ttl_seconds=10, enabled=True, clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)
    cache.delete("a")
    cache.delete("missing")
    assert cache.get("a") is None
    cache.clear()
    assert len(cache) == 0
