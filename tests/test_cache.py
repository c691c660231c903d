import threading

import pytest

from gitflux.cache import VolatileCache


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = VolatileCache(ttl_seconds=60, clock=clock)
    cache.set("octo/repo:commits:30d", [1, 2, 3])

    clock.advance(59.9)
    assert cache.get("octo/repo:commits:30d") == [1, 2, 3]

    clock.advance(0.1)
    assert cache.get("octo/repo:commits:30d") is None
    assert cache.get("octo/repo:commits:30d", "fallback") == "fallback"


def test_expired_entries_stay_stored_until_purged():
    clock = FakeClock()
    cache = VolatileCache(ttl_seconds=10, clock=clock)
    cache.set("old", 1)
    clock.advance(5)
    cache.set("new", 2)
    clock.advance(6)

    stats = cache.stats()
    assert (stats.total, stats.valid, stats.expired) == (2, 1, 1)
    assert len(cache) == 2

    assert cache.purge_expired() == 1
    assert len(cache) == 1
    assert cache.stats().to_dict() == {"total": 1, "valid": 1, "expired": 0}


def test_oldest_written_entry_is_evicted():
    cache = VolatileCache(ttl_seconds=60, max_entries=2, clock=FakeClock())
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("a", 10)
    cache.set("c", 3)

    assert "b" not in cache
    assert cache.get("a") == 10
    assert cache.get("c") == 3
    assert len(cache) == 2


def test_invalidate_by_prefix_and_everything():
    cache = VolatileCache(ttl_seconds=60, clock=FakeClock())
    cache.set("octo/repo:commits:30d", 1)
    cache.set("octo/repo:branch-pr:30d", 2)
    cache.set("octo/other:commits:30d", 3)
    cache.set("someone/repo:commits:30d", 4)

    assert cache.invalidate("octo/repo:") == 2
    assert "octo/other:commits:30d" in cache

    assert cache.invalidate("octo/") == 1
    assert "someone/repo:commits:30d" in cache

    assert cache.invalidate() == 1
    assert len(cache) == 0


def test_contains_treats_falsy_values_as_hits():
    cache = VolatileCache(ttl_seconds=60, clock=FakeClock())
    cache.set("empty", [])

    assert "empty" in cache
    assert "missing" not in cache


@pytest.mark.parametrize("kwargs", [{"ttl_seconds": 0}, {"ttl_seconds": -1}, {"ttl_seconds": 5, "max_entries": 0}])
def test_rejects_invalid_settings(kwargs):
    with pytest.raises(ValueError):
        VolatileCache(**kwargs)


def test_concurrent_writers_respect_the_bound():
    cache = VolatileCache(ttl_seconds=60, max_entries=50)

    def writer(prefix):
        for i in range(200):
            cache.set(f"{prefix}:{i}", i)

    threads = [threading.Thread(target=writer, args=(f"t{n}",)) for n in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(cache) == 50
