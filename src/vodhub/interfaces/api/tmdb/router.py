"""TMDB passthrough endpoint."""

from __future__ import annotations

from typing import cast

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from vodhub.domain.entities import BadRequest, ConfigurationError, UpstreamError
from vodhub.interfaces.app_state import AppState

router = APIRouter(tags=["tmdb"])


@router.get("/tmdb-proxy")
async def tmdb_proxy(request: Request) -> Response:
    state = cast(AppState, request.app.state)
    params = dict(request.query_params)
    path = params.pop("path", None)
    try:
        result = await state.tmdb_proxy_uc.execute(path, params)
    except BadRequest as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    except ConfigurationError as e:
        return JSONResponse({"error": str(e)}, status_code=500)
    except UpstreamError as e:
        return JSONResponse(
            {"error": "Proxy request failed"}, status_code=e.status_code or 500
        )
    return JSONResponse(result)
