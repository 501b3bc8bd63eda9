from lms_portal.common.cache import CacheKeys, TTLCache, invalidate_course


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


def test_entry_expires_after_ttl():
    clock = FakeClock()
    cache = TTLCache(default_ttl=60, clock=clock)
    cache.set("k", "v")

    clock.now += 60
    assert cache.get("k") == "v"

    clock.now += 1
    assert cache.get("k") is None
    assert cache.size() == 0


def test_get_or_set_only_calls_factory_on_miss():
    cache = TTLCache(default_ttl=60, clock=FakeClock())
    calls = []

    def factory():
        calls.append(1)
        return {"n": len(calls)}

    assert cache.get_or_set("k", factory) == {"n": 1}
    assert cache.get_or_set("k", factory) == {"n": 1}
    assert len(calls) == 1


def test_invalidate_course_drops_course_catalog_and_stats_keys():
    cache = TTLCache(default_ttl=60, clock=FakeClock())
    cache.set(CacheKeys.course(7), "course")
    cache.set(CacheKeys.catalog(), ["all"])
    cache.set(CacheKeys.catalog("design"), ["design"])
    cache.set(CacheKeys.stats("admin"), {"users": 1})
    cache.set(CacheKeys.user(1), "user")

    invalidate_course(cache, 7)

    assert cache.get(CacheKeys.course(7)) is None
    assert cache.get(CacheKeys.catalog()) is None
    assert cache.get(CacheKeys.catalog("design")) is None
    assert cache.get(CacheKeys.stats("admin")) is None
    assert cache.get(CacheKeys.user(1)) == "user"


def test_cleanup_removes_only_expired_entries():
    clock = FakeClock()
    cache = TTLCache(default_ttl=10, clock=clock)
    cache.set("short", 1, ttl=5)
    cache.set("long", 2, ttl=100)

    clock.now += 6
    assert cache.cleanup() == 1
    assert cache.has("long")
