"""JSON-document cache - memory mirrored to one file per category."""

from __future__ import annotations

import asyncio
import json
import time
from pathlib import Path
from typing import Any, Callable

import structlog

from vodhub.domain.entities import CacheCategory

from .memory_adapter import CacheStore, MemoryCategoryCache

log = structlog.get_logger(__name__)


def _read_document(path: Path) -> CacheStore:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        log.warning("cache_document_unreadable", path=str(path), error=str(e))
        return {}
    if not isinstance(data, dict):
        log.warning("cache_document_not_mapping", path=str(path))
        return {}
    return {k: v for k, v in data.items() if isinstance(v, dict)}


def _write_document(path: Path, store: CacheStore) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(store, ensure_ascii=False), encoding="utf-8")


class JsonFileCategoryCache(MemoryCategoryCache):
    """Persisted variant of the memory cache.

    Every ``set`` rewrites the *whole* document of the written category
    before returning. Write cost grows with the total number of entries in
    that category; concurrent writers are not serialized (last rewrite wins).

    Args:
        search_path: Document holding the ``search`` category.
        detail_path: Document holding the ``detail`` category.
        clock: Returns the current time in seconds.
    """

    backend_name = "json"

    def __init__(
        self,
        search_path: str | Path,
        detail_path: str | Path,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(clock=clock)
        self._paths: dict[str, Path] = {
            "search": Path(search_path),
            "detail": Path(detail_path),
        }
        self._loaded = False

    async def __aenter__(self) -> JsonFileCategoryCache:
        if not self._loaded:
            for category, path in self._paths.items():
                self._stores[category] = await asyncio.to_thread(_read_document, path)
                log.info(
                    "cache_document_loaded",
                    category=category,
                    path=str(path),
                    entries=len(self._stores[category]),
                )
            self._loaded = True
        return self

    async def set(
        self, category: CacheCategory, key: str, value: Any, ttl_seconds: int
    ) -> None:
        self._put(category, key, value, ttl_seconds)
        path = self._paths[category]
        # Snapshot on the loop thread so the writer never sees a dict mid-mutation.
        snapshot = dict(self._stores[category])
        try:
            await asyncio.to_thread(_write_document, path, snapshot)
        except (OSError, TypeError, ValueError) as e:
            log.error(
                "cache_document_write_failed",
                category=category,
                path=str(path),
                error=str(e),
            )
            return
        log.debug(
            "cache_set",
            category=category,
            key=key,
            ttl=ttl_seconds,
            entries=len(snapshot),
        )
