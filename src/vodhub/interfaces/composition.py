"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from vodhub.application.use_cases import (
    AccessGateUseCase,
    DetailUseCase,
    SearchSingleUseCase,
    SearchStreamUseCase,
    TmdbProxyUseCase,
)
from vodhub.infrastructure.cache.cache_factory import create_cache
from vodhub.infrastructure.config.schema import AppConfig
from vodhub.infrastructure.images import CacheSweeper, ImageCacheStore
from vodhub.infrastructure.sites import SiteDirectory, ensure_local_document
from vodhub.infrastructure.upstream import HttpxUpstreamClient
from vodhub.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

# Upper bound for finishing searches whose client already went away.
_DETACHED_SEARCH_GRACE_SECONDS = 10.0


def _wire_use_cases(state: AppState, config: AppConfig) -> None:
    state.search_stream_uc = SearchStreamUseCase(
        sites=state.sites,
        upstream=state.upstream,
        cache=state.cache,
        ttl_seconds=config.cache.search_ttl_seconds,
        timeout_seconds=config.upstream.search_timeout_seconds,
    )
    state.search_single_uc = SearchSingleUseCase(
        sites=state.sites,
        upstream=state.upstream,
        cache=state.cache,
        ttl_seconds=config.cache.search_ttl_seconds,
        timeout_seconds=config.upstream.search_timeout_seconds,
    )
    state.detail_uc = DetailUseCase(
        sites=state.sites,
        upstream=state.upstream,
        cache=state.cache,
        ttl_seconds=config.cache.detail_ttl_seconds,
        timeout_seconds=config.upstream.detail_timeout_seconds,
    )
    state.tmdb_proxy_uc = TmdbProxyUseCase(
        upstream=state.upstream,
        cache=state.cache,
        api_key=config.tmdb.api_key,
        api_base=config.tmdb.api_base,
        language=config.tmdb.language,
        ttl_seconds=config.tmdb.proxy_ttl_seconds,
        timeout_seconds=config.upstream.proxy_timeout_seconds,
    )
    state.access_uc = AccessGateUseCase(config.access_password)
    log.info(
        "use_cases_initialized",
        tmdb_proxy=bool(config.tmdb.api_key),
        password_required=state.access_uc.requires_password,
    )


def _wire_images(state: AppState, config: AppConfig) -> None:
    images = config.images
    state.image_sweeper = None
    if config.enable_local_image_cache:
        state.image_sweeper = CacheSweeper(
            images.directory,
            max_bytes=images.max_bytes,
            target_ratio=images.trim_ratio,
        )
        state.image_sweeper.start()

    state.image_store = ImageCacheStore(
        root=images.directory,
        http_client=state.http_client,
        sweeper=state.image_sweeper,
        allowed_sizes=images.allowed_sizes,
        upstream_base=images.upstream_base,
        timeout=config.upstream.image_timeout_seconds,
        sweep_threshold=images.sweep_threshold,
    )
    log.info(
        "image_cache_initialized",
        root=str(images.directory),
        max_bytes=images.max_bytes,
        eviction=state.image_sweeper is not None,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan Hook: Initialize and cleanup all resources (DI Composition Root).

    Order matters:
        1. Cache (search/detail/proxy use cases depend on it)
        2. HTTP client + upstream adapter
        3. Site directory (ensures the local document exists)
        4. Use cases
        5. Image cache store + eviction sweeper
    """
    state = cast(AppState, app.state)
    config = state.config

    # 1) Cache (must be first - other components depend on it)
    cache = create_cache(
        backend=config.cache.backend,
        directory=config.cache.directory,
        max_concurrent=config.cache.max_concurrent,
    )
    await cache.__aenter__()
    state.cache = cache
    log.info("cache_initialized", backend=config.cache.backend)

    # 2) Shared HTTP client; timeouts are set per call by the adapters
    state.http_client = httpx.AsyncClient(
        headers={"User-Agent": config.http_user_agent},
        follow_redirects=config.http_follow_redirects,
    )
    state.upstream = HttpxUpstreamClient(http_client=state.http_client)
    log.info("http_client_initialized")

    # 3) Site directory
    await asyncio.to_thread(
        ensure_local_document, config.sites.data_file, config.sites.template_file
    )
    state.sites = SiteDirectory(
        data_file=config.sites.data_file,
        upstream=state.upstream,
        remote_url=config.sites.remote_url,
        remote_ttl_seconds=config.sites.remote_ttl_seconds,
        remote_timeout_seconds=config.sites.remote_timeout_seconds,
    )
    log.info(
        "site_directory_initialized",
        data_file=str(config.sites.data_file),
        remote=bool(config.sites.remote_url),
    )

    # 4) Use cases
    _wire_use_cases(state, config)

    # 5) Image cache
    _wire_images(state, config)

    state.graceful_shutdown.mark_ready()
    log.info("app_startup_complete")

    try:
        yield
    finally:
        await state.graceful_shutdown.wait_for_drain(timeout=10.0)

        if state.search_stream_uc.pending_branches:
            try:
                await asyncio.wait_for(
                    state.search_stream_uc.wait_branches(),
                    timeout=_DETACHED_SEARCH_GRACE_SECONDS,
                )
            except TimeoutError:
                log.warning(
                    "search_branches_abandoned",
                    pending=state.search_stream_uc.pending_branches,
                )

        if state.image_sweeper is not None:
            await state.image_sweeper.stop()

        await state.http_client.aclose()
        log.info("http_client_closed")

        await state.cache.aclose()
        log.info("cache_closed")

        log.info("app_shutdown_complete")
