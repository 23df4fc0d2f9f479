from .store import ALLOWED_SIZES, ImageCacheStore, validate_image_key
from .sweeper import CacheSweeper, SweepReport, sweep_cache_dir

__all__ = [
    "ALLOWED_SIZES",
    "CacheSweeper",
    "ImageCacheStore",
    "SweepReport",
    "sweep_cache_dir",
    "validate_image_key",
]
