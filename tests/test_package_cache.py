import sys
import unittest
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from flowbuilder.config import Settings
from flowbuilder.workflow.cache import (
    InMemoryPackageCache,
    RedisPackageCache,
    create_package_cache,
)
from flowbuilder.workflow.ids import SequentialIdGenerator
from flowbuilder.workflow.pipeline import WorkflowGenerator
from flowbuilder.workflow.schema import WorkflowRequest


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class FakeRedis:
    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key):
        return self.values.get(key)

    async def setex(self, key, ttl, value):
        self.values[key] = value
        self.ttls[key] = ttl


def make_package():
    request = WorkflowRequest(
        name="Nightly Export",
        trigger_kind="scheduled",
        trigger_detail="daily at 2am",
        integrations=["PostgreSQL", "Google Drive"],
        action_narrative="Export yesterday's orders and upload the CSV",
    )
    return WorkflowGenerator(None, InMemoryPackageCache(), ids=SequentialIdGenerator()).build_fallback(
        request
    )


class InMemoryPackageCacheTests(unittest.IsolatedAsyncioTestCase):
    async def test_round_trip_before_expiry(self):
        clock = FakeClock()
        cache = InMemoryPackageCache(clock=clock)
        package = make_package()

        await cache.set("k", package, ttl_seconds=60)
        clock.now += 59
        self.assertEqual(await cache.get("k"), package)

    async def test_entry_expires_after_ttl(self):
        clock = FakeClock()
        cache = InMemoryPackageCache(clock=clock)
        await cache.set("k", make_package(), ttl_seconds=60)

        clock.now += 60
        self.assertIsNone(await cache.get("k"))
        self.assertEqual(len(cache), 0)

    async def test_missing_key(self):
        self.assertIsNone(await InMemoryPackageCache().get("absent"))

    async def test_expired_entries_are_swept_on_write(self):
        clock = FakeClock()
        cache = InMemoryPackageCache(clock=clock)
        package = make_package()

        for i in range(50):
            await cache.set(f"k{i}", package, ttl_seconds=10)
            clock.now += 100

        self.assertEqual(len(cache), 1)
        self.assertIsNone(await cache.get("k0"))

    async def test_evicts_entry_closest_to_expiry_when_full(self):
        clock = FakeClock()
        cache = InMemoryPackageCache(clock=clock, max_entries=2)
        package = make_package()

        await cache.set("long", package, ttl_seconds=600)
        await cache.set("short", package, ttl_seconds=60)
        await cache.set("new", package, ttl_seconds=300)

        self.assertEqual(len(cache), 2)
        self.assertIsNone(await cache.get("short"))
        self.assertEqual(await cache.get("long"), package)
        self.assertEqual(await cache.get("new"), package)

    async def test_rewriting_a_key_does_not_evict_others(self):
        cache = InMemoryPackageCache(clock=FakeClock(), max_entries=2)
        package = make_package()

        await cache.set("a", package, ttl_seconds=60)
        await cache.set("b", package, ttl_seconds=60)
        await cache.set("a", package, ttl_seconds=120)

        self.assertEqual(len(cache), 2)
        self.assertEqual(await cache.get("b"), package)


class RedisPackageCacheTests(unittest.IsolatedAsyncioTestCase):
    async def test_uses_setex_with_ttl(self):
        client = FakeRedis()
        cache = RedisPackageCache(client)
        package = make_package()

        await cache.set("flowbuilder:workflow:default:abc", package, ttl_seconds=86400)

        self.assertEqual(client.ttls["flowbuilder:workflow:default:abc"], 86400)
        self.assertEqual(await cache.get("flowbuilder:workflow:default:abc"), package)
        self.assertIsNone(await cache.get("flowbuilder:workflow:default:other"))


class CacheFactoryTests(unittest.TestCase):
    def test_in_memory_without_redis_url(self):
        settings = Settings(redis_url=None)
        self.assertIsInstance(create_package_cache(settings), InMemoryPackageCache)

    def test_in_memory_bound_comes_from_settings(self):
        cache = create_package_cache(Settings(redis_url=None, cache_max_entries=16))
        self.assertEqual(cache.max_entries, 16)

    def test_redis_with_url(self):
        settings = Settings(redis_url="redis://localhost:6379/0")
        self.assertIsInstance(create_package_cache(settings), RedisPackageCache)


if __name__ == "__main__":
    unittest.main()
