import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from data.cache import TTLCache, METALS_TTL


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def test_set_then_get_returns_value():
    cache = TTLCache()
    cache.set("crypto_prices", [1, 2, 3], ttl=60)
    assert cache.get("crypto_prices") == [1, 2, 3]


def test_missing_key_is_none():
    assert TTLCache().get("nope") is None


def test_entry_expires_after_ttl():
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    cache.set("metal_prices", ["gold"], ttl=METALS_TTL)

    clock.advance(METALS_TTL - 1)
    assert cache.get("metal_prices") == ["gold"]

    clock.advance(1)
    assert cache.get("metal_prices") is None
    assert cache.size == 0


def test_default_ttl_applies_when_not_given():
    clock = FakeClock()
    cache = TTLCache(default_ttl=60, clock=clock)
    cache.set("all_vn_symbols", "x")
    clock.advance(59.9)
    assert cache.get("all_vn_symbols") == "x"
    clock.advance(0.1)
    assert cache.get("all_vn_symbols") is None


def test_set_overwrites_and_resets_clock():
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    cache.set("k", "old", ttl=10)
    clock.advance(8)
    cache.set("k", "new", ttl=10)
    clock.advance(8)
    assert cache.get("k") == "new"


def test_clear_drops_everything():
    cache = TTLCache()
    cache.set("a", 1)
    cache.set("b", 2)
    cache.clear()
    assert cache.size == 0
    assert cache.get("a") is None


def test_cleanup_sweeps_only_expired():
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    cache.set("short", 1, ttl=5)
    cache.set("long", 2, ttl=500)
    clock.advance(10)
    cache.cleanup()
    assert cache.size == 1
    assert cache.get("long") == 2


def test_falsy_values_are_still_hits():
    cache = TTLCache()
    cache.set("empty", [])
    assert cache.get("empty") == []
