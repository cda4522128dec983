"""TTL caches for generated packages."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

import redis.asyncio as redis

from .schema import GeneratedPackage

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


class PackageCache(Protocol):
    async def get(self, key: str) -> GeneratedPackage | None: ...

    async def set(self, key: str, package: GeneratedPackage, ttl_seconds: int) -> None: ...


class RedisPackageCache:
    """Packages stored as JSON strings with SETEX."""

    def __init__(self, client: redis.Redis):
        self._redis = client

    @classmethod
    def from_url(cls, url: str) -> RedisPackageCache:
        return cls(redis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> GeneratedPackage | None:
        raw = await self._redis.get(key)
        if raw is None:
            return None
        return GeneratedPackage.model_validate_json(raw)

    async def set(self, key: str, package: GeneratedPackage, ttl_seconds: int) -> None:
        await self._redis.setex(key, ttl_seconds, package.model_dump_json())
        logger.debug("Cached package %s under %s for %ss", package.id, key, ttl_seconds)


class InMemoryPackageCache:
    """Process-local cache; entries expire after their TTL.

    Expired entries are swept on every write, and once ``max_entries`` live
    entries are held the one closest to expiry is evicted.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, max_entries: int = 1024):
        self._clock = clock
        self.max_entries = max_entries
        # key -> (expires_at, serialized package)
        self._entries: dict[str, tuple[float, str]] = {}

    async def get(self, key: str) -> GeneratedPackage | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, raw = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return GeneratedPackage.model_validate_json(raw)

    async def set(self, key: str, package: GeneratedPackage, ttl_seconds: int) -> None:
        now = self._clock()
        self._sweep(now)
        self._entries.pop(key, None)
        while self._entries and len(self._entries) >= self.max_entries:
            oldest = min(self._entries, key=lambda k: self._entries[k][0])
            del self._entries[oldest]
        self._entries[key] = (now + ttl_seconds, package.model_dump_json())

    def _sweep(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)


def create_package_cache(settings: Settings) -> PackageCache:
    """Redis when a URL is configured, otherwise the in-process cache."""
    if settings.redis_url:
        return RedisPackageCache.from_url(settings.redis_url)
    logger.info("REDIS_URL not set; using in-memory package cache")
    return InMemoryPackageCache(max_entries=settings.cache_max_entries)
