"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from vodhub.infrastructure.config import AppConfig
from vodhub.infrastructure.graceful_shutdown import GracefulShutdown

if TYPE_CHECKING:
    from vodhub.application.use_cases import (
        AccessGateUseCase,
        DetailUseCase,
        SearchSingleUseCase,
        SearchStreamUseCase,
        TmdbProxyUseCase,
    )
    from vodhub.domain.ports import (
        CategoryCachePort,
        SiteDirectoryPort,
        UpstreamClientPort,
    )
    from vodhub.infrastructure.images import CacheSweeper, ImageCacheStore


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure
    cache: CategoryCachePort
    http_client: httpx.AsyncClient

    # Domain Ports
    upstream: UpstreamClientPort
    sites: SiteDirectoryPort

    # Use cases
    search_stream_uc: SearchStreamUseCase
    search_single_uc: SearchSingleUseCase
    detail_uc: DetailUseCase
    tmdb_proxy_uc: TmdbProxyUseCase
    access_uc: AccessGateUseCase

    # Image cache (sweeper is None when eviction is disabled)
    image_store: ImageCacheStore
    image_sweeper: CacheSweeper | None

    # Graceful shutdown (request tracking + drain)
    graceful_shutdown: GracefulShutdown
