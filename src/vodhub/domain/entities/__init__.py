from .catalog import (
    CACHE_CATEGORIES,
    BadRequest,
    CacheCategory,
    CatalogError,
    ConfigurationError,
    DetailNotFound,
    ImageFetchFailed,
    InvalidImageRequest,
    SearchBatch,
    SearchDone,
    SearchEvent,
    SearchResultItem,
    Source,
    SourceNotFound,
    UpstreamError,
)
from .upstream import UpstreamFailure, UpstreamPayload

__all__ = [
    "CACHE_CATEGORIES",
    "BadRequest",
    "CacheCategory",
    "CatalogError",
    "ConfigurationError",
    "DetailNotFound",
    "ImageFetchFailed",
    "InvalidImageRequest",
    "SearchBatch",
    "SearchDone",
    "SearchEvent",
    "SearchResultItem",
    "Source",
    "SourceNotFound",
    "UpstreamError",
    "UpstreamFailure",
    "UpstreamPayload",
]
