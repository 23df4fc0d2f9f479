"""Diskcache adapter - SQLite-based category cache without daemon process."""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Any, Callable

import structlog
from diskcache import Cache as DiskCache

from vodhub.domain.entities import CACHE_CATEGORIES, CacheCategory

log = structlog.get_logger(__name__)


class DiskcacheCategoryCache:
    """Async wrapper for diskcache.Cache (sync-only library).

    Keys are namespaced as ``"{category}:{key}"``. Each write touches a single
    row, unlike the JSON document backend.

    - Uses `asyncio.to_thread` for I/O (no blocking of the event loop).
    - Semaphore prevents too many parallel disk ops (SQLite lock contention).

    Args:
        directory: SQLite DB path.
        max_concurrent: Max parallel disk ops.
        clock: Returns the current time in seconds.
    """

    backend_name = "diskcache"

    def __init__(
        self,
        directory: str | Path = "./.cache/vodhub",
        *,
        max_concurrent: int = 10,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.directory = Path(directory)
        self._cache: DiskCache | None = None
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._clock = clock

    # --- Context Manager ---
    async def __aenter__(self) -> DiskcacheCategoryCache:
        if self._cache is None:
            self._cache = await asyncio.to_thread(DiskCache, str(self.directory))
            log.info("diskcache_opened", path=str(self.directory))
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._cache is not None:
            await asyncio.to_thread(self._cache.close)
            self._cache = None
            log.info("diskcache_closed", directory=str(self.directory))

    @staticmethod
    def _namespaced(category: CacheCategory, key: str) -> str:
        if category not in CACHE_CATEGORIES:
            raise ValueError(f"Unknown cache category: {category!r}")
        return f"{category}:{key}"

    def _require_open(self) -> DiskCache:
        if self._cache is None:
            raise RuntimeError(
                "Cache not initialized. Use 'async with cache:' or await cache.__aenter__()"
            )
        return self._cache

    # --- CategoryCachePort implementation ---
    async def get(self, category: CacheCategory, key: str) -> Any:
        cache = self._require_open()
        name = self._namespaced(category, key)

        async with self._semaphore:
            entry = await asyncio.to_thread(cache.get, name, default=None)

        value = None
        if isinstance(entry, dict) and entry.get("expire", 0) > int(
            self._clock() * 1000
        ):
            value = entry.get("value")
        log.debug("cache_get", category=category, key=key, hit=value is not None)
        return value

    async def set(
        self, category: CacheCategory, key: str, value: Any, ttl_seconds: int
    ) -> None:
        cache = self._require_open()
        name = self._namespaced(category, key)
        entry = {
            "value": value,
            "expire": int(self._clock() * 1000) + int(ttl_seconds * 1000),
        }

        async with self._semaphore:
            # diskcache's own expiry lets SQLite reclaim rows eventually.
            await asyncio.to_thread(cache.set, name, entry, expire=ttl_seconds)
        log.debug("cache_set", category=category, key=key, ttl=ttl_seconds)
