"""Shared test fixtures for the vodhub test suite."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest

from vodhub.domain.entities import Source

# ---------------------------------------------------------------------------
# Domain entity fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def source() -> Source:
    return Source(key="siteA", name="Site A", api="https://a.example.com/api.php")


@pytest.fixture()
def other_source() -> Source:
    return Source(key="siteB", name="Site B", api="https://b.example.com/api.php")


def make_upstream_item(vod_id: int, name: str = "Movie", **extra: Any) -> dict[str, Any]:
    """Raw catalog record as returned by an upstream ``?ac=detail`` call."""
    item = {
        "vod_id": vod_id,
        "vod_name": name,
        "vod_pic": f"https://img.example.com/{vod_id}.jpg",
        "vod_remarks": "HD",
        "vod_year": "2024",
        "type_name": "Movie",
        "vod_content": "Plot summary",
        "vod_play_from": "m3u8",
        "vod_play_url": f"EP1$https://play.example.com/{vod_id}.m3u8",
        "vod_actor": "ignored by search mapping",
    }
    item.update(extra)
    return item


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


class FakeClock:
    """Manually advanced clock (seconds)."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Mock port fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_cache() -> AsyncMock:
    """Mock CategoryCachePort (always misses)."""
    cache = AsyncMock()
    cache.get = AsyncMock(return_value=None)
    cache.set = AsyncMock()
    cache.aclose = AsyncMock()
    return cache


@pytest.fixture()
def mock_sites(source: Source, other_source: Source) -> AsyncMock:
    """Mock SiteDirectoryPort with two registered sources."""
    sources = [source, other_source]
    sites = AsyncMock()
    sites.list_sources = AsyncMock(return_value=sources)
    sites.get_source = AsyncMock(
        side_effect=lambda key: next((s for s in sources if s.key == key), None)
    )
    sites.load_document = AsyncMock(
        return_value={"sites": [s.to_dict() for s in sources]}
    )
    return sites


@pytest.fixture()
def mock_upstream() -> AsyncMock:
    """Mock UpstreamClientPort returning an empty catalog page."""
    upstream = AsyncMock()
    upstream.fetch_source = AsyncMock(return_value={"list": []})
    upstream.fetch_json = AsyncMock(return_value={})
    return upstream


@pytest.fixture()
def upstream_item():
    """Factory for raw upstream catalog records."""
    return make_upstream_item
