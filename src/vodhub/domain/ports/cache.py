"""Cache Port - category-scoped TTL cache, backend-agnostic."""

from __future__ import annotations

from typing import Any, Protocol

from vodhub.domain.entities import CacheCategory


class CategoryCachePort(Protocol):
    """Port for an async key/value cache partitioned by category.

    Implementations:
      - MemoryCategoryCache (process lifetime only)
      - JsonFileCategoryCache (memory mirrored to one JSON document per category)
      - DiskcacheCategoryCache (SQLite-based, incremental writes)
      - NullCategoryCache (caching disabled)

    Reads are lazy with respect to expiry: an expired entry is a miss but is
    not removed by ``get``.
    """

    async def get(self, category: CacheCategory, key: str) -> Any:
        """Return the stored value, or None when absent or expired."""
        ...

    async def set(
        self, category: CacheCategory, key: str, value: Any, ttl_seconds: int
    ) -> None:
        """Store value until now + ttl_seconds. Visible to the next get()."""
        ...

    async def aclose(self) -> None:
        """Release backend resources."""
        ...

    async def __aenter__(self) -> CategoryCachePort: ...

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None: ...
