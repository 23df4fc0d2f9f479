"""Port for the registry of upstream sources."""

from __future__ import annotations

from typing import Any, Protocol

from vodhub.domain.entities import Source


class SiteDirectoryPort(Protocol):
    async def load_document(self) -> dict[str, Any]:
        """Return the raw directory document (``{"sites": [...]}``)."""
        ...

    async def list_sources(self) -> list[Source]:
        """Return the current set of usable sources."""
        ...

    async def get_source(self, key: str | None) -> Source | None:
        """Return the source registered under ``key`` (None if unknown)."""
        ...
