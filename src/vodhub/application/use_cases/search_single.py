"""Single-source search: request/response, cache-first, reduced fields."""

from __future__ import annotations

from typing import Any

import structlog

from vodhub.application.use_cases.search_stream import (
    SEARCH_TIMEOUT_SECONDS,
    SEARCH_TTL_SECONDS,
    search_cache_key,
)
from vodhub.domain.entities import (
    BadRequest,
    SearchResultItem,
    SourceNotFound,
    UpstreamError,
    UpstreamFailure,
)
from vodhub.domain.ports import CategoryCachePort, SiteDirectoryPort, UpstreamClientPort
from vodhub.infrastructure.upstream.client import upstream_list

log = structlog.get_logger(__name__)


class SearchSingleUseCase:
    """Searches exactly one source selected by key.

    Shares cache keys with the streaming search, so a cached entry written by
    either path is served by both. Only the summary fields are kept on a
    fresh fetch.
    """

    def __init__(
        self,
        *,
        sites: SiteDirectoryPort,
        upstream: UpstreamClientPort,
        cache: CategoryCachePort,
        ttl_seconds: int = SEARCH_TTL_SECONDS,
        timeout_seconds: float = SEARCH_TIMEOUT_SECONDS,
    ) -> None:
        self._sites = sites
        self._upstream = upstream
        self._cache = cache
        self._ttl = ttl_seconds
        self._timeout = timeout_seconds

    async def execute(self, keyword: str | None, source_key: str | None) -> Any:
        """Return ``{"list": [...]}`` for ``keyword`` on one source.

        Raises:
            SourceNotFound: ``source_key`` is not registered.
            BadRequest: ``keyword`` is missing.
            UpstreamError: cache miss and the upstream call failed.
        """
        source = await self._sites.get_source(source_key)
        if source is None:
            raise SourceNotFound(source_key)
        if not keyword:
            raise BadRequest("Missing keyword")

        cache_key = search_cache_key(source.key, keyword)
        cached = await self._cache.get("search", cache_key)
        if cached is not None:
            log.info("search_cache_hit", cache_key=cache_key)
            return cached

        log.info("search_source_fetch", source=source.name, keyword=keyword)
        result = await self._upstream.fetch_source(
            source, {"ac": "detail", "wd": keyword}, timeout=self._timeout
        )
        if isinstance(result, UpstreamFailure):
            log.error(
                "search_source_failed",
                source=source.name,
                reason=result.reason,
                status=result.status_code,
            )
            raise UpstreamError(result.reason, result.status_code)

        payload = {
            "list": [
                SearchResultItem.from_upstream(raw).to_summary_wire()
                for raw in upstream_list(result)
            ]
        }
        await self._cache.set("search", cache_key, payload, self._ttl)
        return payload
