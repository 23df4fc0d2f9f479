"""Tests for DetailUseCase."""

from __future__ import annotations

import pytest

from vodhub.application.use_cases import DetailUseCase
from vodhub.application.use_cases.detail import detail_cache_key
from vodhub.domain.entities import (
    DetailNotFound,
    SourceNotFound,
    UpstreamError,
    UpstreamFailure,
)
from vodhub.infrastructure.cache import MemoryCategoryCache


@pytest.fixture()
def uc(mock_sites, mock_upstream, mock_cache) -> DetailUseCase:
    return DetailUseCase(sites=mock_sites, upstream=mock_upstream, cache=mock_cache)


class TestDetail:
    def test_cache_key(self) -> None:
        assert detail_cache_key("siteA", 42) == "siteA_detail_42"

    @pytest.mark.asyncio()
    async def test_fetches_and_caches_first_record(
        self, uc, mock_upstream, mock_cache, upstream_item, source
    ) -> None:
        record = upstream_item(42, "Matrix")
        mock_upstream.fetch_source.return_value = {"list": [record, upstream_item(43)]}

        result = await uc.execute("siteA", "42")

        assert result == record
        mock_upstream.fetch_source.assert_awaited_once_with(
            source, {"ac": "detail", "ids": "42"}, timeout=8.0
        )
        mock_cache.set.assert_awaited_once_with("detail", "siteA_detail_42", record, 3600)

    @pytest.mark.asyncio()
    async def test_cache_hit_skips_upstream(self, uc, mock_upstream, mock_cache) -> None:
        mock_cache.get.return_value = {"vod_id": 42}

        assert await uc.execute("siteA", "42") == {"vod_id": 42}
        mock_upstream.fetch_source.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_not_found_is_not_cached(self, uc, mock_upstream, mock_cache) -> None:
        mock_upstream.fetch_source.return_value = {"list": []}

        with pytest.raises(DetailNotFound):
            await uc.execute("siteA", "404")
        with pytest.raises(DetailNotFound):
            await uc.execute("siteA", "404")

        assert mock_upstream.fetch_source.await_count == 2
        mock_cache.set.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_unknown_source(self, uc, mock_upstream) -> None:
        with pytest.raises(SourceNotFound):
            await uc.execute("nope", "1")
        mock_upstream.fetch_source.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_upstream_failure(self, uc, mock_upstream) -> None:
        mock_upstream.fetch_source.return_value = UpstreamFailure(
            reason="timeout", url="https://a"
        )
        with pytest.raises(UpstreamError):
            await uc.execute("siteA", "1")

    @pytest.mark.asyncio()
    async def test_cached_for_an_hour(
        self, mock_sites, mock_upstream, upstream_item, clock
    ) -> None:
        mock_upstream.fetch_source.return_value = {"list": [upstream_item(1)]}
        uc = DetailUseCase(
            sites=mock_sites, upstream=mock_upstream, cache=MemoryCategoryCache(clock=clock)
        )

        await uc.execute("siteA", "1")
        clock.advance(3599)
        await uc.execute("siteA", "1")
        assert mock_upstream.fetch_source.await_count == 1

        clock.advance(1)
        await uc.execute("siteA", "1")
        assert mock_upstream.fetch_source.await_count == 2
