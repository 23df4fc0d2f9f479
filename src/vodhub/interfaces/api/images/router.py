"""Image cache endpoint."""

from __future__ import annotations

from typing import cast

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, PlainTextResponse, Response

from vodhub.domain.entities import ImageFetchFailed, InvalidImageRequest
from vodhub.interfaces.app_state import AppState

router = APIRouter(tags=["images"])


@router.get("/tmdb-image/{size}/{filename}")
async def tmdb_image(request: Request, size: str, filename: str) -> Response:
    state = cast(AppState, request.app.state)
    try:
        path = await state.image_store.get(size, filename)
    except InvalidImageRequest:
        return PlainTextResponse("Invalid parameters", status_code=400)
    except ImageFetchFailed:
        return PlainTextResponse("Image not found", status_code=404)
    return FileResponse(path)
