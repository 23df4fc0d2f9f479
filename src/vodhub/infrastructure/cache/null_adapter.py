"""Null cache - caching disabled, every read is a miss."""

from __future__ import annotations

from typing import Any

from vodhub.domain.entities import CACHE_CATEGORIES, CacheCategory


class NullCategoryCache:
    backend_name = "none"

    async def __aenter__(self) -> NullCategoryCache:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        return None

    async def get(self, category: CacheCategory, key: str) -> Any:
        if category not in CACHE_CATEGORIES:
            raise ValueError(f"Unknown cache category: {category!r}")
        return None

    async def set(
        self, category: CacheCategory, key: str, value: Any, ttl_seconds: int
    ) -> None:
        if category not in CACHE_CATEGORIES:
            raise ValueError(f"Unknown cache category: {category!r}")
