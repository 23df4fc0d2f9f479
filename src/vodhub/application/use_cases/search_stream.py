"""Streaming multi-source search: fan out to every source, push partial results."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import structlog

from vodhub.domain.entities import (
    BadRequest,
    SearchBatch,
    SearchDone,
    SearchEvent,
    SearchResultItem,
    Source,
    UpstreamFailure,
)
from vodhub.domain.ports import CategoryCachePort, SiteDirectoryPort, UpstreamClientPort
from vodhub.infrastructure.upstream.client import upstream_list

log = structlog.get_logger(__name__)

SEARCH_TTL_SECONDS = 600
SEARCH_TIMEOUT_SECONDS = 8.0

# Marks one settled branch on the results queue.
_SETTLED = object()


def search_cache_key(source_key: str, keyword: str) -> str:
    return f"{source_key}_{keyword}"


def decorate(items: list[dict[str, Any]], source: Source) -> list[dict[str, Any]]:
    """Attach the owning source to cached items."""
    return [
        {**item, "site_key": source.key, "site_name": source.name}
        for item in items
        if isinstance(item, dict)
    ]


class SearchStreamUseCase:
    """Searches all registered sources concurrently and yields per-source batches.

    Flow per source (independent branches):
        1. Cache lookup (category ``search``); a hit never calls upstream
        2. Upstream call ``{ac: detail, wd: keyword}``
        3. Cache write of the mapped list (empty lists included)
        4. One ``SearchBatch`` if the list is non-empty

    After every branch settled a single ``SearchDone`` is yielded. Branch
    failures contribute nothing and never abort the stream. If the consumer
    stops iterating, the branches still run to completion so their results
    land in the cache.
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
        self._branches: set[asyncio.Task[None]] = set()

    @property
    def pending_branches(self) -> int:
        return len(self._branches)

    async def wait_branches(self) -> None:
        """Wait for branches detached from a closed stream (tests/shutdown)."""
        if self._branches:
            await asyncio.gather(*self._branches, return_exceptions=True)

    async def stream(self, keyword: str) -> AsyncIterator[SearchEvent]:
        if not keyword:
            raise BadRequest("Missing keyword")

        sources = await self._sites.list_sources()
        queue: asyncio.Queue[Any] = asyncio.Queue()
        for source in sources:
            task = asyncio.create_task(self._branch(source, keyword, queue))
            self._branches.add(task)
            task.add_done_callback(self._branches.discard)

        log.info("search_stream_started", keyword=keyword, sources=len(sources))

        settled = 0
        batches = 0
        while settled < len(sources):
            message = await queue.get()
            if message is _SETTLED:
                settled += 1
                continue
            batches += 1
            yield message

        log.info(
            "search_stream_completed",
            keyword=keyword,
            sources=len(sources),
            batches=batches,
        )
        yield SearchDone(sources=len(sources), batches=batches)

    async def _branch(
        self, source: Source, keyword: str, queue: asyncio.Queue[Any]
    ) -> None:
        try:
            items = await self._search_source(source, keyword)
            if items:
                queue.put_nowait(SearchBatch(source_key=source.key, items=items))
        except Exception:
            log.error(
                "search_branch_failed",
                source=source.key,
                keyword=keyword,
                exc_info=True,
            )
        finally:
            queue.put_nowait(_SETTLED)

    async def _search_source(self, source: Source, keyword: str) -> list[dict[str, Any]]:
        cache_key = search_cache_key(source.key, keyword)
        cached = await self._cache_read(cache_key)
        if cached is not None:
            log.debug("search_cache_hit", source=source.key, cache_key=cache_key)
            return decorate(cached, source)

        log.info("search_source_fetch", source=source.name, keyword=keyword)
        result = await self._upstream.fetch_source(
            source, {"ac": "detail", "wd": keyword}, timeout=self._timeout
        )
        if isinstance(result, UpstreamFailure):
            log.warning(
                "search_source_failed",
                source=source.name,
                reason=result.reason,
                status=result.status_code,
            )
            return []

        items = [
            SearchResultItem.from_upstream(raw, source).to_wire()
            for raw in upstream_list(result)
        ]
        # Empty lists are cached too: repeated "no results" skip upstream.
        await self._cache_write(cache_key, items)
        return items

    async def _cache_read(self, cache_key: str) -> list[Any] | None:
        """Cached result list, or None on miss / unreadable entry."""
        try:
            cached = await self._cache.get("search", cache_key)
        except Exception:
            log.warning("search_cache_read_error", cache_key=cache_key, exc_info=True)
            return None
        if isinstance(cached, dict) and isinstance(cached.get("list"), list):
            return cached["list"]
        return None

    async def _cache_write(self, cache_key: str, items: list[dict[str, Any]]) -> None:
        try:
            await self._cache.set("search", cache_key, {"list": items}, self._ttl)
        except Exception:
            log.warning("search_cache_store_error", cache_key=cache_key, exc_info=True)
