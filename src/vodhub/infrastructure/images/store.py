"""On-disk image cache in front of the TMDB image CDN."""

from __future__ import annotations

import asyncio
import os
import re
from pathlib import Path

import httpx
import structlog

from vodhub.domain.entities import ImageFetchFailed, InvalidImageRequest
from vodhub.infrastructure.images.sweeper import CacheSweeper

log = structlog.get_logger(__name__)

ALLOWED_SIZES: tuple[str, ...] = ("w300", "w342", "w500", "w780", "w1280", "original")
TMDB_IMAGE_BASE = "https://image.tmdb.org/t/p"

# The filename becomes a path component under the cache root; anything
# outside this set (notably "/" and "\") is rejected before touching disk.
_FILENAME_RE = re.compile(r"[A-Za-z0-9_.\-]+")


def validate_image_key(
    size: str, filename: str, allowed_sizes: tuple[str, ...] = ALLOWED_SIZES
) -> None:
    """Raise InvalidImageRequest unless (size, filename) is safe to map to disk."""
    if size not in allowed_sizes:
        raise InvalidImageRequest(f"size not allowed: {size!r}")
    if not _FILENAME_RE.fullmatch(filename or "") or filename in (".", ".."):
        raise InvalidImageRequest(f"invalid filename: {filename!r}")


def _touch_if_cached(path: Path) -> bool:
    """Refresh mtime of a non-empty cached file. False on miss."""
    try:
        if path.stat().st_size <= 0:
            return False
        os.utime(path, None)
    except (FileNotFoundError, NotADirectoryError):
        return False
    return True


def _unlink_quietly(path: Path) -> None:
    try:
        path.unlink()
    except (FileNotFoundError, NotADirectoryError):
        pass
    except OSError as e:
        log.error("image_partial_cleanup_failed", path=str(path), error=str(e))


class ImageCacheStore:
    """Serves images keyed by ``(size, filename)`` from ``root/size/filename``.

    A hit refreshes the file's mtime (the eviction clock). A miss streams the
    upstream bytes straight into the destination file; a failed transfer
    deletes what was written so a truncated file never counts as a hit.
    Concurrent misses for the same key share one download.

    Every ``sweep_threshold`` completed insertions a sweep request is posted
    to the sweeper; the request path never waits for it.

    Args:
        root: Cache root directory.
        http_client: Shared httpx client.
        sweeper: Eviction worker (None disables eviction).
        upstream_base: Image CDN prefix, ``{base}/{size}/{filename}``.
        timeout: Per-download timeout in seconds.
        sweep_threshold: Insertions between two sweep requests.
    """

    def __init__(
        self,
        *,
        root: str | Path,
        http_client: httpx.AsyncClient,
        sweeper: CacheSweeper | None = None,
        allowed_sizes: tuple[str, ...] = ALLOWED_SIZES,
        upstream_base: str = TMDB_IMAGE_BASE,
        timeout: float = 10.0,
        sweep_threshold: int = 50,
        chunk_size: int = 64 * 1024,
    ) -> None:
        self.root = Path(root)
        self._http = http_client
        self._sweeper = sweeper
        self._allowed_sizes = tuple(allowed_sizes)
        self._upstream_base = upstream_base.rstrip("/")
        self._timeout = timeout
        self._sweep_threshold = max(1, sweep_threshold)
        self._chunk_size = chunk_size
        self._insertions = 0
        self._inflight: dict[Path, asyncio.Task[None]] = {}

    @property
    def pending_insertions(self) -> int:
        """Insertions counted since the last sweep request."""
        return self._insertions

    def upstream_url(self, size: str, filename: str) -> str:
        return f"{self._upstream_base}/{size}/{filename}"

    async def get(self, size: str, filename: str) -> Path:
        """Return the local path of a complete, non-empty cached image.

        Raises:
            InvalidImageRequest: size/filename rejected (no disk access done).
            ImageFetchFailed: cache miss and the upstream transfer failed.
        """
        validate_image_key(size, filename, self._allowed_sizes)
        path = self.root / size / filename

        task = self._inflight.get(path)
        if task is None:
            cached = await asyncio.to_thread(_touch_if_cached, path)
            # A download may have started while we were stat-ing; its file
            # is not complete yet.
            task = self._inflight.get(path)
            if cached and task is None:
                log.debug("image_cache_hit", size=size, filename=filename)
                return path
            if task is None:
                task = self._start_download(path, self.upstream_url(size, filename))

        # Shielded: a client that goes away must not abort a shared download.
        await asyncio.shield(task)
        return path

    def _start_download(self, path: Path, url: str) -> asyncio.Task[None]:
        task = asyncio.create_task(self._download(path, url))
        self._inflight[path] = task

        def _done(t: asyncio.Task[None]) -> None:
            self._inflight.pop(path, None)
            if not t.cancelled():
                t.exception()  # retrieved by waiters; avoid "never retrieved"

        task.add_done_callback(_done)
        return task

    async def _download(self, path: Path, url: str) -> None:
        log.info("image_cache_fetch", url=url)
        try:
            await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
            async with self._http.stream("GET", url, timeout=self._timeout) as resp:
                resp.raise_for_status()
                fh = await asyncio.to_thread(path.open, "wb")
                try:
                    async for chunk in resp.aiter_bytes(self._chunk_size):
                        await asyncio.to_thread(fh.write, chunk)
                finally:
                    await asyncio.to_thread(fh.close)
            written = (await asyncio.to_thread(path.stat)).st_size
        except (httpx.HTTPError, OSError) as e:
            await asyncio.to_thread(_unlink_quietly, path)
            log.warning("image_cache_fetch_failed", url=url, error=str(e))
            raise ImageFetchFailed(url) from e
        except asyncio.CancelledError:
            _unlink_quietly(path)
            raise

        if written <= 0:
            await asyncio.to_thread(_unlink_quietly, path)
            log.warning("image_cache_empty_body", url=url)
            raise ImageFetchFailed(url)

        log.debug("image_cache_stored", path=str(path), size_bytes=written)
        self._record_insertion()

    def _record_insertion(self) -> None:
        self._insertions += 1
        if self._insertions < self._sweep_threshold:
            return
        self._insertions = 0
        if self._sweeper is not None:
            self._sweeper.request_sweep()
