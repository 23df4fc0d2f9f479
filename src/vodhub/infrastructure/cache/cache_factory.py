"""Cache factory - builds the category cache selected by config."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Callable, Literal

import structlog

from vodhub.domain.ports.cache import CategoryCachePort
from vodhub.infrastructure.cache.diskcache_adapter import DiskcacheCategoryCache
from vodhub.infrastructure.cache.json_file_adapter import JsonFileCategoryCache
from vodhub.infrastructure.cache.memory_adapter import MemoryCategoryCache
from vodhub.infrastructure.cache.null_adapter import NullCategoryCache

log = structlog.get_logger(__name__)

CacheBackend = Literal["memory", "json", "diskcache", "none"]

SEARCH_DOCUMENT = "cache_search.json"
DETAIL_DOCUMENT = "cache_detail.json"


def create_cache(
    backend: CacheBackend = "json",
    *,
    directory: str | Path = ".",
    max_concurrent: int = 10,
    clock: Callable[[], float] = time.time,
) -> CategoryCachePort:
    """Create a category cache for ``backend``.

    Args:
        backend: "memory", "json" (two JSON documents), "diskcache" (SQLite)
            or "none" (disabled).
        directory: Where the JSON documents / the SQLite DB live.
        max_concurrent: Semaphore limit for diskcache.
        clock: Time source in seconds, injected for tests.

    Raises:
        ValueError: If `backend` is unknown.
    """
    directory = Path(directory)
    log.info("cache_factory_create", backend=backend, directory=str(directory))

    if backend == "memory":
        return MemoryCategoryCache(clock=clock)
    if backend == "json":
        return JsonFileCategoryCache(
            directory / SEARCH_DOCUMENT,
            directory / DETAIL_DOCUMENT,
            clock=clock,
        )
    if backend == "diskcache":
        return DiskcacheCategoryCache(
            directory, max_concurrent=max_concurrent, clock=clock
        )
    if backend == "none":
        return NullCategoryCache()
    raise ValueError(
        f"Unknown cache backend: {backend!r}. "
        "Must be 'memory', 'json', 'diskcache' or 'none'."
    )
