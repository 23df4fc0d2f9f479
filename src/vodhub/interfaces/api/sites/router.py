"""Site directory and client configuration endpoints."""

from __future__ import annotations

from typing import Any, cast

from fastapi import APIRouter, Request

from vodhub.interfaces.app_state import AppState

router = APIRouter(tags=["sites"])


@router.get("/sites")
async def list_sites(request: Request) -> dict[str, Any]:
    state = cast(AppState, request.app.state)
    return await state.sites.load_document()


@router.get("/config")
async def client_config(request: Request) -> dict[str, Any]:
    """Settings the web client needs at boot (the TMDB key is used client-side)."""
    config = cast(AppState, request.app.state).config
    return {
        "tmdb_api_key": config.tmdb.api_key,
        "tmdb_proxy_url": config.tmdb.proxy_url,
        "enable_local_image_cache": config.enable_local_image_cache,
    }
