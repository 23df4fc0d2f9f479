from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

CacheCategory = Literal["search", "detail"]
CACHE_CATEGORIES: tuple[CacheCategory, ...] = ("search", "detail")


@dataclass(frozen=True)
class Source:
    key: str  # Stable identifier (e.g. "siteA")
    name: str  # Display name
    api: str  # Upstream catalog endpoint

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Source:
        key = str(data.get("key") or "").strip()
        api = str(data.get("api") or "").strip()
        if not key or not api:
            raise ValueError("site entry requires 'key' and 'api'")
        return cls(key=key, name=str(data.get("name") or key), api=api)

    def to_dict(self) -> dict[str, str]:
        return {"key": self.key, "name": self.name, "api": self.api}


@dataclass(frozen=True)
class SearchResultItem:
    """One normalized upstream search hit.

    The wire shape keeps the upstream catalog field names so that existing
    frontends can consume it unchanged.
    """

    id: Any
    title: str | None = None
    cover_image: str | None = None
    remarks: str | None = None
    year: Any = None
    type_name: str | None = None
    # Full-result extras (omitted in the single-source summary shape)
    content_summary: str | None = None
    play_from: str | None = None  # "$$$"-joined playback source names
    play_url: str | None = None  # matching episode/URL lists
    source_key: str | None = None
    source_name: str | None = None

    @classmethod
    def from_upstream(
        cls, item: Mapping[str, Any], source: Source | None = None
    ) -> SearchResultItem:
        return cls(
            id=item.get("vod_id"),
            title=item.get("vod_name"),
            cover_image=item.get("vod_pic"),
            remarks=item.get("vod_remarks"),
            year=item.get("vod_year"),
            type_name=item.get("type_name"),
            content_summary=item.get("vod_content"),
            play_from=item.get("vod_play_from"),
            play_url=item.get("vod_play_url"),
            source_key=source.key if source else None,
            source_name=source.name if source else None,
        )

    def to_summary_wire(self) -> dict[str, Any]:
        return {
            "vod_id": self.id,
            "vod_name": self.title,
            "vod_pic": self.cover_image,
            "vod_remarks": self.remarks,
            "vod_year": self.year,
            "type_name": self.type_name,
        }

    def to_wire(self) -> dict[str, Any]:
        return {
            **self.to_summary_wire(),
            "vod_content": self.content_summary,
            "vod_play_from": self.play_from,
            "vod_play_url": self.play_url,
            "site_key": self.source_key,
            "site_name": self.source_name,
        }


@dataclass(frozen=True)
class SearchBatch:
    """Results of one source, emitted as soon as that source settles."""

    source_key: str
    items: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class SearchDone:
    """Terminal event: every source branch has settled."""

    sources: int = 0
    batches: int = 0


SearchEvent = SearchBatch | SearchDone


class CatalogError(Exception):
    """Base error for catalog use cases."""


class BadRequest(CatalogError):
    pass


class SourceNotFound(CatalogError):
    def __init__(self, source_key: str | None) -> None:
        super().__init__(f"unknown source: {source_key!r}")
        self.source_key = source_key


class DetailNotFound(CatalogError):
    pass


class ConfigurationError(CatalogError):
    pass


class UpstreamError(CatalogError):
    """Upstream fetch failed for a caller that needs the data."""

    def __init__(self, reason: str, status_code: int | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code


class InvalidImageRequest(CatalogError):
    pass


class ImageFetchFailed(CatalogError):
    pass
