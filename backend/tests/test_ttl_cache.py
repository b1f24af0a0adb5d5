import threading

import pytest

from services.ttl_cache import CacheEntry, TTLCache


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_cache_entry_freshness():
    entry = CacheEntry(value="x", loaded_at=10.0)
    assert entry.is_fresh(14.9, 5)
    assert not entry.is_fresh(15.0, 5)


def test_value_reused_within_ttl_and_reloaded_after():
    clock = FakeClock()
    calls = {"count": 0}

    def loader():
        calls["count"] += 1
        return f"v{calls['count']}"

    cache = TTLCache(loader, ttl_seconds=300, clock=clock)
    assert cache.get() == "v1"
    clock.now += 299
    assert cache.get() == "v1"
    assert calls["count"] == 1

    clock.now += 1
    assert cache.get() == "v2"
    assert cache.get() == "v2"
    assert calls["count"] == 2


def test_zero_ttl_always_reloads():
    calls = {"count": 0}

    def loader():
        calls["count"] += 1
        return calls["count"]

    cache = TTLCache(loader, ttl_seconds=0, clock=FakeClock())
    cache.get()
    cache.get()
    assert calls["count"] == 2


def test_failed_refresh_keeps_previous_entry():
    clock = FakeClock()
    state = {"fail": False}

    def loader():
        if state["fail"]:
            raise ValueError("boom")
        return "good"

    cache = TTLCache(loader, ttl_seconds=10, clock=clock)
    assert cache.get() == "good"
    clock.now += 11
    state["fail"] = True
    with pytest.raises(ValueError):
        cache.get()
    assert cache.entry is not None and cache.entry.value == "good"

    state["fail"] = False
    assert cache.get() == "good"


def test_concurrent_first_load_is_single_flight():
    started = threading.Event()
    release = threading.Event()
    calls = {"count": 0}

    def loader():
        calls["count"] += 1
        started.set()
        release.wait(timeout=5)
        return "loaded"

    cache = TTLCache(loader, ttl_seconds=60, clock=FakeClock())
    results = []

    def reader():
        results.append(cache.get())

    threads = [threading.Thread(target=reader) for _ in range(8)]
    threads[0].start()
    assert started.wait(timeout=5)
    for t in threads[1:]:
        t.start()
    release.set()
    for t in threads:
        t.join(timeout=5)

    assert calls["count"] == 1
    assert results == ["loaded"] * 8


def test_stale_value_served_while_refresh_in_flight():
    clock = FakeClock()
    in_loader = threading.Event()
    release = threading.Event()
    calls = {"count": 0}

    def loader():
        calls["count"] += 1
        if calls["count"] == 2:
            in_loader.set()
            release.wait(timeout=5)
        return f"v{calls['count']}"

    cache = TTLCache(loader, ttl_seconds=60, clock=clock)
    assert cache.get() == "v1"
    clock.now += 61

    refreshed = []
    refresher = threading.Thread(target=lambda: refreshed.append(cache.get()))
    refresher.start()
    assert in_loader.wait(timeout=5)

    # Another reader during the refresh gets the last good value, no second load
    assert cache.get() == "v1"
    release.set()
    refresher.join(timeout=5)

    assert refreshed == ["v2"]
    assert calls["count"] == 2
    assert cache.get() == "v2"
