from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class UpstreamFailure:
    """Typed outcome of a failed upstream call (never raised)."""

    reason: str  # "timeout", "http_status", "transport", "invalid_json"
    url: str
    status_code: int | None = None
    detail: str | None = None


UpstreamPayload = dict[str, Any]
