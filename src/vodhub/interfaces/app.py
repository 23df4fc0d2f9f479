"""FastAPI application factory (create_app)."""

from __future__ import annotations

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.responses import Response

from vodhub.infrastructure.config import AppConfig
from vodhub.infrastructure.graceful_shutdown import GracefulShutdown
from vodhub.interfaces.api.middleware import RequestTrackingMiddleware
from vodhub.interfaces.app_state import AppState
from vodhub.interfaces.composition import lifespan

log = structlog.get_logger(__name__)


def create_app(config: AppConfig) -> FastAPI:
    """Create FastAPI app: configuration ONLY, NO resource initialization.

    Resources (HTTP client, cache, site directory, image cache) are created
    in lifespan().
    """
    app = FastAPI(
        title="vodhub",
        description="Multi-source video catalog aggregator",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config
    app.state.graceful_shutdown = GracefulShutdown()

    # Outermost first: CORS wraps gzip wraps request tracking.
    app.add_middleware(
        RequestTrackingMiddleware, shutdown=app.state.graceful_shutdown
    )
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from vodhub.interfaces.api.auth.router import router as auth_router
    from vodhub.interfaces.api.detail.router import router as detail_router
    from vodhub.interfaces.api.images.router import router as images_router
    from vodhub.interfaces.api.search.router import router as search_router
    from vodhub.interfaces.api.sites.router import router as sites_router
    from vodhub.interfaces.api.tmdb.router import router as tmdb_router

    app.include_router(search_router, prefix="/api")
    app.include_router(detail_router, prefix="/api")
    app.include_router(sites_router, prefix="/api")
    app.include_router(images_router, prefix="/api")
    app.include_router(tmdb_router, prefix="/api")
    app.include_router(auth_router, prefix="/api")

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        """Liveness probe: 200 as long as the process is running."""
        return {"status": "ok"}

    @app.get("/readyz")
    async def readyz() -> Response:
        """Readiness probe: 200 after startup complete, 503 otherwise."""
        gs: GracefulShutdown = app.state.graceful_shutdown
        if gs.is_ready:
            return JSONResponse({"status": "ready"}, status_code=200)
        return JSONResponse({"status": "not_ready"}, status_code=503)

    return app
