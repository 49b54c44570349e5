import pytest

from app.utils.cache import InMemoryTTLCache


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.mark.unit
class TestInMemoryTTLCache:
    def test_get_within_ttl(self):
        clock = _Clock()
        cache = InMemoryTTLCache(default_ttl=60, clock=clock)
        cache.set("a", {"zoning": "R1"})
        clock.now += 59
        assert cache.get("a") == {"zoning": "R1"}

    def test_expired_entry_is_dropped(self):
        clock = _Clock()
        cache = InMemoryTTLCache(default_ttl=60, clock=clock)
        cache.set("a", 1)
        clock.now += 61
        assert cache.get("a") is None
        assert cache.stats()["total_entries"] == 0

    def test_per_entry_ttl(self):
        clock = _Clock()
        cache = InMemoryTTLCache(default_ttl=60, clock=clock)
        cache.set("short", 1, ttl=5)
        cache.set("long", 2)
        clock.now += 10
        assert cache.get("short") is None
        assert cache.get("long") == 2

    def test_delete(self):
        cache = InMemoryTTLCache()
        cache.set("a", 1)
        assert cache.delete("a") is True
        assert cache.delete("a") is False
        assert cache.get("a") is None

    def test_cleanup_and_stats(self):
        clock = _Clock()
        cache = InMemoryTTLCache(default_ttl=60, clock=clock)
        cache.set("old", 1, ttl=1)
        cache.set("new", 2)
        clock.now += 2
        assert cache.stats() == {"total_entries": 2, "expired_entries": 1, "valid_entries": 1}
        assert cache.cleanup() == 1
        assert cache.stats()["total_entries"] == 1
