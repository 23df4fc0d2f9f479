"""Shared-password gate endpoints."""

from __future__ import annotations

from typing import Any, cast

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, Field

from vodhub.interfaces.app_state import AppState

router = APIRouter(prefix="/auth", tags=["auth"])


class VerifyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    password: str | None = None
    password_hash: str | None = Field(default=None, alias="passwordHash")


@router.get("/check")
async def auth_check(request: Request) -> dict[str, bool]:
    state = cast(AppState, request.app.state)
    return {"requirePassword": state.access_uc.requires_password}


@router.post("/verify")
async def auth_verify(request: Request, body: VerifyRequest) -> dict[str, Any]:
    state = cast(AppState, request.app.state)
    return state.access_uc.verify(body.password, body.password_hash)
