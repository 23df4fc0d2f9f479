"""Site directory - remote-or-local registry of upstream sources."""

from __future__ import annotations

import asyncio
import json
import shutil
import time
from pathlib import Path
from typing import Any, Callable

import structlog

from vodhub.domain.entities import Source, UpstreamFailure
from vodhub.domain.ports.upstream import UpstreamClientPort

log = structlog.get_logger(__name__)


def ensure_local_document(data_file: Path, template_file: Path | None = None) -> None:
    """Create ``data_file`` on first start (from the template when present)."""
    if data_file.exists():
        return
    data_file.parent.mkdir(parents=True, exist_ok=True)
    if template_file is not None and template_file.exists():
        shutil.copyfile(template_file, data_file)
        log.info("site_directory_initialized", source="template", path=str(data_file))
    else:
        data_file.write_text(json.dumps({"sites": []}, indent=2), encoding="utf-8")
        log.info("site_directory_initialized", source="empty", path=str(data_file))


def _read_local(data_file: Path) -> dict[str, Any]:
    try:
        data = json.loads(data_file.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        log.error("site_directory_local_unreadable", path=str(data_file), error=str(e))
        return {"sites": []}
    if not isinstance(data, dict):
        log.error("site_directory_local_not_mapping", path=str(data_file))
        return {"sites": []}
    return data


def parse_sources(document: dict[str, Any]) -> list[Source]:
    sources: list[Source] = []
    for raw in document.get("sites") or []:
        if not isinstance(raw, dict):
            continue
        try:
            sources.append(Source.from_mapping(raw))
        except ValueError:
            log.warning("site_entry_skipped", entry=raw)
    return sources


class SiteDirectory:
    """Accessor around the site document, optionally backed by a remote copy.

    With ``remote_url`` set, ``load_document`` refreshes the remote document
    at most once per ``remote_ttl_seconds``; it must carry a ``sites`` array.
    A failed refresh is not retried before the same interval has passed, and
    falls back silently to the last good remote document or the local file.

    Source lookups (``list_sources`` / ``get_source``) never touch the
    network: they read the last good remote document, otherwise the local
    JSON file.
    """

    def __init__(
        self,
        *,
        data_file: str | Path,
        upstream: UpstreamClientPort | None = None,
        remote_url: str | None = None,
        remote_ttl_seconds: float = 300.0,
        remote_timeout_seconds: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._data_file = Path(data_file)
        self._upstream = upstream
        self._remote_url = remote_url or None
        self._remote_ttl = remote_ttl_seconds
        self._remote_timeout = remote_timeout_seconds
        self._clock = clock
        self._remote_doc: dict[str, Any] | None = None
        self._remote_attempted_at: float | None = None

    def _refresh_due(self) -> bool:
        if not self._remote_url or self._upstream is None:
            return False
        if self._remote_attempted_at is None:
            return True
        return self._clock() - self._remote_attempted_at >= self._remote_ttl

    async def _refresh_remote(self) -> None:
        # Successful and failed attempts both start a new interval.
        self._remote_attempted_at = self._clock()
        result = await self._upstream.fetch_json(
            self._remote_url, {}, timeout=self._remote_timeout
        )
        if isinstance(result, UpstreamFailure):
            log.warning(
                "site_directory_remote_failed",
                url=self._remote_url,
                reason=result.reason,
                retry_in_s=self._remote_ttl,
            )
            return
        if not isinstance(result.get("sites"), list):
            log.warning("site_directory_remote_invalid", url=self._remote_url)
            return

        self._remote_doc = result
        log.info(
            "site_directory_remote_loaded",
            url=self._remote_url,
            sites=len(result["sites"]),
        )

    async def _current_document(self) -> dict[str, Any]:
        if self._remote_doc is not None:
            return self._remote_doc
        return await asyncio.to_thread(_read_local, self._data_file)

    async def load_document(self) -> dict[str, Any]:
        if self._refresh_due():
            await self._refresh_remote()
        return await self._current_document()

    async def list_sources(self) -> list[Source]:
        return parse_sources(await self._current_document())

    async def get_source(self, key: str | None) -> Source | None:
        if not key:
            return None
        for source in await self.list_sources():
            if source.key == key:
                return source
        return None
