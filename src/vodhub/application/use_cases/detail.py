"""Detail resolver: cache-first single-source lookup of one record."""

from __future__ import annotations

from typing import Any

import structlog

from vodhub.domain.entities import (
    DetailNotFound,
    SourceNotFound,
    UpstreamError,
    UpstreamFailure,
)
from vodhub.domain.ports import CategoryCachePort, SiteDirectoryPort, UpstreamClientPort
from vodhub.infrastructure.upstream.client import upstream_list

log = structlog.get_logger(__name__)

DETAIL_TTL_SECONDS = 3600
DETAIL_TIMEOUT_SECONDS = 8.0


def detail_cache_key(source_key: str, vod_id: Any) -> str:
    return f"{source_key}_detail_{vod_id}"


class DetailUseCase:
    """Resolves one detail record, caching it verbatim for an hour.

    Not-found results are not cached; every lookup of a missing id goes to
    the upstream again.
    """

    def __init__(
        self,
        *,
        sites: SiteDirectoryPort,
        upstream: UpstreamClientPort,
        cache: CategoryCachePort,
        ttl_seconds: int = DETAIL_TTL_SECONDS,
        timeout_seconds: float = DETAIL_TIMEOUT_SECONDS,
    ) -> None:
        self._sites = sites
        self._upstream = upstream
        self._cache = cache
        self._ttl = ttl_seconds
        self._timeout = timeout_seconds

    async def execute(self, source_key: str | None, vod_id: Any) -> dict[str, Any]:
        """Return the upstream detail record.

        Raises:
            SourceNotFound: ``source_key`` is not registered.
            DetailNotFound: upstream returned an empty list.
            UpstreamError: upstream call failed.
        """
        source = await self._sites.get_source(source_key)
        if source is None:
            raise SourceNotFound(source_key)

        cache_key = detail_cache_key(source.key, vod_id)
        cached = await self._cache.get("detail", cache_key)
        if cached is not None:
            log.info("detail_cache_hit", cache_key=cache_key)
            return cached

        log.info("detail_fetch", source=source.name, vod_id=vod_id)
        result = await self._upstream.fetch_source(
            source, {"ac": "detail", "ids": vod_id}, timeout=self._timeout
        )
        if isinstance(result, UpstreamFailure):
            log.error(
                "detail_fetch_failed",
                source=source.name,
                vod_id=vod_id,
                reason=result.reason,
                status=result.status_code,
            )
            raise UpstreamError(result.reason, result.status_code)

        items = upstream_list(result)
        if not items:
            log.info("detail_not_found", source=source.name, vod_id=vod_id)
            raise DetailNotFound(f"{source.key}/{vod_id}")

        detail = items[0]
        await self._cache.set("detail", cache_key, detail, self._ttl)
        return detail
