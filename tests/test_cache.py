import pytest

from supply_api.cache import SupplyCache
from tests.support import FakeClock


@pytest.fixture
def cache(clock):
    return SupplyCache(ttl=100, max_size=3, clock=clock)


class TestSupplyCacheExpiry:
    def test_get_returns_latest_value(self, cache):
        cache.set("a", 1)
        cache.set("a", 2)
        assert cache.get("a") == 2

    def test_get_missing_key(self, cache):
        assert cache.get("missing") is None

    def test_value_keeps_full_precision(self, cache):
        huge = 2**200 + 1
        cache.set("a", huge)
        assert cache.get("a") == huge

    def test_lazy_expiry_removes_entry(self, cache, clock):
        cache.set("a", 1)
        clock.advance(99.9)
        assert cache.get("a") == 1

        clock.advance(0.1)
        assert cache.has("a")
        assert cache.get("a") is None
        assert not cache.has("a")

    def test_refresh_resets_age(self, cache, clock):
        cache.set("a", 1)
        clock.advance(90)
        cache.set("a", 5)
        clock.advance(90)
        assert cache.get("a") == 5

    def test_peek_ignores_ttl_without_deleting(self, cache, clock):
        cache.set("a", 7)
        clock.advance(500)
        assert cache.peek("a") == 7
        assert cache.has("a")

    def test_nearing_expiration_threshold(self, cache, clock):
        cache.set("a", 1)
        clock.advance(79)
        assert not cache.is_nearing_expiration("a")
        assert cache.is_fresh("a")

        clock.advance(1)
        assert cache.is_nearing_expiration("a")
        assert not cache.is_fresh("a")
        assert cache.get("a") == 1

    def test_unknown_key_is_not_nearing_expiration(self, cache):
        assert not cache.is_nearing_expiration("nope")
        assert not cache.is_fresh("nope")
        assert cache.is_expired("nope")

    def test_clean_expired(self, cache, clock):
        cache.set("old", 1)
        clock.advance(60)
        cache.set("new", 2)
        clock.advance(40)

        removed = cache.clean_expired()

        assert removed == 1
        assert list(cache.keys()) == ["new"]


class TestSupplyCacheEviction:
    def test_size_never_exceeds_max(self, cache, clock):
        for i in range(10):
            cache.set(f"k{i}", i)
            clock.advance(1)
            assert cache.size <= 3
        assert len(cache) == 3

    def test_evicts_least_recently_accessed_not_oldest_created(self, cache, clock):
        cache.set("a", 1)
        clock.advance(1)
        cache.set("b", 2)
        clock.advance(1)
        cache.set("c", 3)
        clock.advance(1)

        # "a" is the oldest created but was read most recently
        assert cache.get("a") == 1
        clock.advance(1)
        cache.set("d", 4)

        assert cache.has("a")
        assert not cache.has("b")
        assert cache.has("c")
        assert cache.has("d")

    def test_overwrite_at_capacity_does_not_evict(self, cache, clock):
        for key in ("a", "b", "c"):
            cache.set(key, 0)
            clock.advance(1)

        cache.set("b", 9)

        assert cache.size == 3
        assert sorted(cache.keys()) == ["a", "b", "c"]

    def test_peek_does_not_refresh_access_time(self, cache, clock):
        for key in ("a", "b", "c"):
            cache.set(key, 0)
            clock.advance(1)

        cache.peek("a")
        cache.set("d", 1)

        assert not cache.has("a")

    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            SupplyCache(ttl=1, max_size=0, clock=FakeClock())

    def test_clear(self, cache):
        cache.set("a", 1)
        cache.clear()
        assert cache.size == 0
