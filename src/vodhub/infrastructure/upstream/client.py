"""Upstream catalog client - single-shot async httpx GETs with hard timeouts."""

from __future__ import annotations

from typing import Any, Mapping

import httpx
import structlog

from vodhub.domain.entities import Source, UpstreamFailure, UpstreamPayload

log = structlog.get_logger(__name__)


class HttpxUpstreamClient:
    """Implements ``UpstreamClientPort`` on a shared ``httpx.AsyncClient``.

    Every call is attempted exactly once. Non-2xx responses, transport
    errors, timeouts and bodies that are not a JSON object come back as an
    ``UpstreamFailure``; nothing is raised to the caller.
    """

    def __init__(self, *, http_client: httpx.AsyncClient) -> None:
        self._http = http_client

    async def fetch_source(
        self,
        source: Source,
        params: Mapping[str, Any],
        *,
        timeout: float,
    ) -> UpstreamPayload | UpstreamFailure:
        return await self.fetch_json(source.api, params, timeout=timeout)

    async def fetch_json(
        self,
        url: str,
        params: Mapping[str, Any],
        *,
        timeout: float,
    ) -> UpstreamPayload | UpstreamFailure:
        try:
            resp = await self._http.get(url, params=dict(params), timeout=timeout)
            resp.raise_for_status()
        except httpx.TimeoutException as e:
            log.warning("upstream_timeout", url=url, timeout=timeout)
            return UpstreamFailure(reason="timeout", url=url, detail=str(e) or None)
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            log.warning("upstream_http_error", url=url, status=status)
            return UpstreamFailure(reason="http_status", url=url, status_code=status)
        except httpx.HTTPError as e:
            log.warning("upstream_network_error", url=url, error=str(e))
            return UpstreamFailure(reason="transport", url=url, detail=str(e))

        try:
            data = resp.json()
        except ValueError:
            log.warning("upstream_invalid_json", url=url)
            return UpstreamFailure(
                reason="invalid_json", url=url, status_code=resp.status_code
            )
        if not isinstance(data, dict):
            log.warning("upstream_unexpected_shape", url=url, type=type(data).__name__)
            return UpstreamFailure(
                reason="invalid_json", url=url, status_code=resp.status_code
            )
        return data


def upstream_list(payload: UpstreamPayload) -> list[dict[str, Any]]:
    """Extract the ``list`` array of a catalog response (missing -> [])."""
    items = payload.get("list")
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]
