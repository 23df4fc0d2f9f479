"""In-memory category cache - data lives for the process lifetime only."""

from __future__ import annotations

import time
from typing import Any, Callable

import structlog

from vodhub.domain.entities import CACHE_CATEGORIES, CacheCategory

log = structlog.get_logger(__name__)

# Stored entry shape, shared with the JSON documents: {"value": ..., "expire": ms}
CacheStore = dict[str, dict[str, Any]]


def _now_ms(clock: Callable[[], float]) -> int:
    return int(clock() * 1000)


class MemoryCategoryCache:
    """Category-scoped TTL cache kept in plain dicts.

    Expired entries are treated as misses but stay in the store; nothing
    reclaims them.

    Args:
        clock: Returns the current time in seconds (default: ``time.time``).
    """

    backend_name = "memory"

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._stores: dict[str, CacheStore] = {c: {} for c in CACHE_CATEGORIES}

    # --- Context Manager ---
    async def __aenter__(self) -> MemoryCategoryCache:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        return None

    def _store(self, category: CacheCategory) -> CacheStore:
        try:
            return self._stores[category]
        except KeyError:
            raise ValueError(f"Unknown cache category: {category!r}") from None

    def _lookup(self, category: CacheCategory, key: str) -> Any:
        entry = self._store(category).get(key)
        if entry is None:
            return None
        if entry.get("expire", 0) <= _now_ms(self._clock):
            return None
        return entry.get("value")

    def _put(
        self, category: CacheCategory, key: str, value: Any, ttl_seconds: int
    ) -> None:
        expire = _now_ms(self._clock) + int(ttl_seconds * 1000)
        self._store(category)[key] = {"value": value, "expire": expire}

    # --- CategoryCachePort implementation ---
    async def get(self, category: CacheCategory, key: str) -> Any:
        value = self._lookup(category, key)
        log.debug("cache_get", category=category, key=key, hit=value is not None)
        return value

    async def set(
        self, category: CacheCategory, key: str, value: Any, ttl_seconds: int
    ) -> None:
        self._put(category, key, value, ttl_seconds)
        log.debug("cache_set", category=category, key=key, ttl=ttl_seconds)

    def entry_count(self, category: CacheCategory) -> int:
        """Number of stored entries, expired ones included."""
        return len(self._store(category))
