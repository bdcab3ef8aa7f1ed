"""Tests for RouteCache — keys, TTL, and bounded eviction."""

from __future__ import annotations

import pytest

from command_router.engine.cache import RouteCache
from command_router.engine.models import RouteContext


class TestCacheKey:
    def test_normalizes_case_and_whitespace(self):
        assert RouteCache.key("  Deploy    JUDO ") == "deploy judo"

    def test_context_without_target_adds_nothing(self):
        assert RouteCache.key("deploy", RouteContext(conversation_id="c1")) == "deploy"

    def test_repo_discriminator(self):
        assert RouteCache.key("deploy", RouteContext(active_repo="judo")) == "deploy|repo:judo"

    def test_company_discriminator(self):
        assert RouteCache.key("deadlines", RouteContext(active_company="GMH")) == "deadlines|co:GMH"

    def test_repo_wins_over_company(self):
        ctx = RouteContext(active_repo="judo", active_company="GMH")
        assert RouteCache.key("deploy", ctx) == "deploy|repo:judo"


class TestCacheExpiry:
    def test_hit_within_ttl(self, cache, clock):
        cache.set("k", "deploy judo")
        clock.advance(299)
        entry = cache.get("k")
        assert entry is not None
        assert entry.command == "deploy judo"

    def test_expired_entry_is_a_miss_and_removed(self, cache, clock):
        cache.set("k", "deploy judo")
        clock.advance(300)
        assert cache.get("k") is None
        assert "k" not in cache

    def test_purge_expired(self, cache, clock):
        cache.set("old", "a")
        clock.advance(200)
        cache.set("new", "b")
        clock.advance(150)
        assert cache.purge_expired() == 1
        assert "new" in cache
        assert len(cache) == 1


class TestCacheEviction:
    def test_overflow_evicts_oldest_inserted(self, clock):
        cache = RouteCache(max_size=2, clock=clock)
        cache.set("a", "1")
        cache.set("b", "2")
        cache.get("a")  # reads do not refresh insertion order
        cache.set("c", "3")
        assert "a" not in cache
        assert "b" in cache and "c" in cache

    def test_reset_existing_key_does_not_evict(self, clock):
        cache = RouteCache(max_size=2, clock=clock)
        cache.set("a", "1")
        cache.set("b", "2")
        cache.set("a", "1b")
        assert len(cache) == 2
        assert cache.get("a").command == "1b"
        cache.set("c", "3")
        assert "b" not in cache
        assert "a" in cache

    def test_invalid_max_size(self):
        with pytest.raises(ValueError):
            RouteCache(max_size=0)

    def test_stats_and_clear(self, cache):
        cache.set("a", "1")
        assert cache.stats() == {"size": 1, "max_size": 500, "ttl": 300.0}
        cache.clear()
        assert len(cache) == 0
