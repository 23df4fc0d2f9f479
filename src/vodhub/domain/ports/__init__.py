from .cache import CategoryCachePort
from .site_directory import SiteDirectoryPort
from .upstream import UpstreamClientPort

__all__ = [
    "CategoryCachePort",
    "SiteDirectoryPort",
    "UpstreamClientPort",
]
