"""Port for single-shot upstream catalog fetches."""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from vodhub.domain.entities import Source, UpstreamFailure, UpstreamPayload


class UpstreamClientPort(Protocol):
    """One bounded-timeout GET per call, no retries, never raises."""

    async def fetch_json(
        self,
        url: str,
        params: Mapping[str, Any],
        *,
        timeout: float,
    ) -> UpstreamPayload | UpstreamFailure: ...

    async def fetch_source(
        self,
        source: Source,
        params: Mapping[str, Any],
        *,
        timeout: float,
    ) -> UpstreamPayload | UpstreamFailure: ...
