"""Search endpoints: SSE fan-out (GET) and single-source search (POST)."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import cast

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from vodhub.application.use_cases import SearchStreamUseCase
from vodhub.domain.entities import (
    BadRequest,
    SearchBatch,
    SourceNotFound,
    UpstreamError,
)
from vodhub.interfaces.app_state import AppState


router = APIRouter(tags=["search"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # disable nginx buffering
}

DONE_FRAME = "event: done\ndata: {}\n\n"


class SingleSearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    keyword: str | None = None
    site_key: str | None = Field(default=None, alias="siteKey")


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def data_frame(items: list) -> str:
    return f"data: {json.dumps(items, ensure_ascii=False)}\n\n"


async def _sse_frames(uc: SearchStreamUseCase, keyword: str) -> AsyncIterator[str]:
    """Render search events as SSE frames.

    If the client disconnects the response is cancelled here; the use case
    keeps its branch tasks alive, so the started searches still get cached.
    """
    async with aclosing(uc.stream(keyword)) as events:
        async for event in events:
            if isinstance(event, SearchBatch):
                yield data_frame(event.items)
            else:
                yield DONE_FRAME


@router.get("/search")
async def search_stream(
    request: Request,
    wd: str | None = Query(None, description="Search keyword"),
    stream: str | None = Query(None, description="Must be 'true'"),
) -> Response:
    state = cast(AppState, request.app.state)

    if not wd:
        return _error("Missing keyword", 400)
    if stream != "true":
        return _error("Use stream=true for GET requests", 400)

    return StreamingResponse(
        _sse_frames(state.search_stream_uc, wd),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/search")
async def search_single(request: Request, body: SingleSearchRequest) -> Response:
    state = cast(AppState, request.app.state)
    try:
        result = await state.search_single_uc.execute(body.keyword, body.site_key)
    except SourceNotFound:
        return _error("Site not found", 404)
    except BadRequest as e:
        return _error(str(e), 400)
    except UpstreamError:
        return _error("Search failed", 500)
    return JSONResponse(result)
