import time

from aerohealth.cache import CacheSweeper, CacheTTL, ResultCache, canonical_key


class FakeClock:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def test_get_returns_value_until_expiry():
    clock = FakeClock()
    cache = ResultCache(clock=clock)
    cache.set("k", {"v": 1}, 1)
    assert cache.get("k") == {"v": 1}

    clock.advance(1.0)
    assert cache.get("k") == {"v": 1}

    clock.advance(0.001)
    assert cache.get("k") is None
    assert len(cache) == 0


def test_set_overwrites_existing_entry():
    clock = FakeClock()
    cache = ResultCache(clock=clock)
    cache.set("k", "old", 10)
    cache.set("k", "new", 1)
    clock.advance(5)
    assert cache.get("k") is None


def test_has_and_delete():
    cache = ResultCache(clock=FakeClock())
    cache.set("k", 0, 60)
    assert cache.has("k")
    cache.delete("k")
    assert not cache.has("k")
    cache.delete("missing")


def test_has_sees_falsy_values():
    cache = ResultCache(clock=FakeClock())
    cache.set("empty", [], 60)
    assert cache.has("empty")
    assert cache.get("empty") == []


def test_get_default_for_missing_key():
    cache = ResultCache(clock=FakeClock())
    assert cache.get("nope", "fallback") == "fallback"


def test_clear_expired_removes_only_stale_entries():
    clock = FakeClock()
    cache = ResultCache(clock=clock)
    cache.set("short", 1, 10)
    cache.set("long", 2, 100)
    clock.advance(50)
    assert cache.stats()["expired"] == 1
    assert cache.clear_expired() == 1
    assert cache.stats() == {"size": 1, "keys": ["long"], "expired": 0}


def test_clear():
    cache = ResultCache(clock=FakeClock())
    cache.set("a", 1, 10)
    cache.clear()
    assert len(cache) == 0


def test_canonical_key_ignores_parameter_order():
    assert canonical_key("op", {"b": 2, "a": 1}) == canonical_key("op", {"a": 1, "b": 2})
    assert canonical_key("op", {"b": 2, "a": 1}) == "op:a=1&b=2"
    assert canonical_key("national-aqi", {}) == "national-aqi:"


def test_canonical_key_distinguishes_values():
    assert canonical_key("op", {"a": 1}) != canonical_key("op", {"a": 2})
    assert canonical_key("op", {"a": 1}) != canonical_key("other", {"a": 1})


def test_ttl_classes():
    assert CacheTTL.AQI_GRID < CacheTTL.WIND < CacheTTL.POLLEN
    assert CacheTTL.WILDFIRES < CacheTTL.POLLUTION_SOURCES


def test_sweeper_runs_and_stops():
    clock = FakeClock()
    cache = ResultCache(clock=clock)
    cache.set("stale", 1, 1)
    clock.advance(10)

    sweeper = CacheSweeper(cache, interval=0.01)
    sweeper.start()
    try:
        deadline = time.monotonic() + 2
        while len(cache) and time.monotonic() < deadline:
            time.sleep(0.01)
        assert len(cache) == 0
        assert sweeper.running
    finally:
        sweeper.stop()
    assert not sweeper.running
