"""TMDB API passthrough with response caching."""

from __future__ import annotations

from typing import Any, Mapping

import structlog

from vodhub.domain.entities import (
    BadRequest,
    ConfigurationError,
    UpstreamError,
    UpstreamFailure,
)
from vodhub.domain.ports import CategoryCachePort, UpstreamClientPort

log = structlog.get_logger(__name__)

TMDB_API_BASE = "https://api.themoviedb.org/3"
TMDB_PROXY_TTL_SECONDS = 36_000  # 10 hours
TMDB_PROXY_TIMEOUT_SECONDS = 10.0


def proxy_cache_key(path: str, params: Mapping[str, Any]) -> str:
    """Stable key: parameters sorted by name."""
    query = "&".join(f"{k}={params[k]}" for k in sorted(params))
    return f"tmdb_proxy_{path}_{query}"


class TmdbProxyUseCase:
    """Forwards ``GET {api_base}{path}`` with the server-side API key.

    Responses are cached under the ``detail`` category.
    """

    def __init__(
        self,
        *,
        upstream: UpstreamClientPort,
        cache: CategoryCachePort,
        api_key: str | None,
        api_base: str = TMDB_API_BASE,
        language: str = "zh-CN",
        ttl_seconds: int = TMDB_PROXY_TTL_SECONDS,
        timeout_seconds: float = TMDB_PROXY_TIMEOUT_SECONDS,
    ) -> None:
        self._upstream = upstream
        self._cache = cache
        self._api_key = api_key
        self._api_base = api_base.rstrip("/")
        self._language = language
        self._ttl = ttl_seconds
        self._timeout = timeout_seconds

    async def execute(self, path: str | None, params: Mapping[str, Any]) -> Any:
        if not path or not path.startswith("/"):
            raise BadRequest("Missing path")
        if not self._api_key:
            raise ConfigurationError("API Key not configured")

        cache_key = proxy_cache_key(path, params)
        cached = await self._cache.get("detail", cache_key)
        if cached is not None:
            log.debug("tmdb_proxy_cache_hit", cache_key=cache_key)
            return cached

        result = await self._upstream.fetch_json(
            f"{self._api_base}{path}",
            {**params, "api_key": self._api_key, "language": self._language},
            timeout=self._timeout,
        )
        if isinstance(result, UpstreamFailure):
            log.error(
                "tmdb_proxy_failed",
                path=path,
                reason=result.reason,
                status=result.status_code,
            )
            raise UpstreamError(result.reason, result.status_code)

        await self._cache.set("detail", cache_key, result, self._ttl)
        return result
