"""Detail endpoints (GET wraps the record in a list, POST returns it bare)."""

from __future__ import annotations

from typing import Any, cast

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from vodhub.domain.entities import DetailNotFound, SourceNotFound, UpstreamError
from vodhub.interfaces.app_state import AppState


router = APIRouter(tags=["detail"])


class DetailRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Any = None
    site_key: str | None = Field(default=None, alias="siteKey")


async def _resolve(
    state: AppState, site_key: str | None, vod_id: Any, *, wrap: bool
) -> Response:
    # Frontends expect an (empty) "list" on errors of the GET shape only.
    extra: dict[str, Any] = {"list": []} if wrap else {}
    if vod_id is None or vod_id == "":
        if await state.sites.get_source(site_key) is None:
            return JSONResponse({"error": "Site not found"}, status_code=404)
        return JSONResponse({"error": "Missing id", **extra}, status_code=400)

    try:
        detail = await state.detail_uc.execute(site_key, vod_id)
    except SourceNotFound:
        return JSONResponse({"error": "Site not found"}, status_code=404)
    except DetailNotFound:
        return JSONResponse({"error": "Not found", **extra}, status_code=404)
    except UpstreamError:
        return JSONResponse(
            {"error": "Detail fetch failed", **extra}, status_code=500
        )

    return JSONResponse({"list": [detail]} if wrap else detail)


@router.get("/detail")
async def detail_get(
    request: Request,
    id: str | None = Query(None, description="Record id"),
    site_key: str | None = Query(None, description="Source key"),
) -> Response:
    state = cast(AppState, request.app.state)
    return await _resolve(state, site_key, id, wrap=True)


@router.post("/detail")
async def detail_post(request: Request, body: DetailRequest) -> Response:
    state = cast(AppState, request.app.state)
    return await _resolve(state, body.site_key, body.id, wrap=False)
