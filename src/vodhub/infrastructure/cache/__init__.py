"""Cache Infrastructure - Backend-Implementations."""

from .cache_factory import CacheBackend, create_cache
from .diskcache_adapter import DiskcacheCategoryCache
from .json_file_adapter import JsonFileCategoryCache
from .memory_adapter import MemoryCategoryCache
from .null_adapter import NullCategoryCache

__all__ = [
    "CacheBackend",
    "DiskcacheCategoryCache",
    "JsonFileCategoryCache",
    "MemoryCategoryCache",
    "NullCategoryCache",
    "create_cache",
]
