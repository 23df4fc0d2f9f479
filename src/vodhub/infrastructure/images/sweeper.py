"""Size-bounded eviction for the on-disk image cache.

The sweep walks the cache root, and when the total exceeds the byte budget
deletes files oldest-mtime-first until usage is back under
``target_ratio * max_bytes``. Trimming below the budget (rather than to it)
keeps the next sweeps from firing on every few insertions.
"""

from __future__ import annotations

import asyncio
import os
from contextlib import suppress
from dataclasses import dataclass
from pathlib import Path

import structlog

log = structlog.get_logger(__name__)

DEFAULT_MAX_BYTES = 1024 * 1024 * 1024  # 1 GiB
DEFAULT_TARGET_RATIO = 0.9


@dataclass(frozen=True)
class CachedFile:
    path: Path
    size: int
    mtime: float


@dataclass(frozen=True)
class SweepReport:
    total_bytes: int
    file_count: int
    deleted_files: int = 0
    deleted_bytes: int = 0

    @property
    def remaining_bytes(self) -> int:
        return self.total_bytes - self.deleted_bytes


def collect_files(root: Path) -> list[CachedFile]:
    """Recursively list regular files under ``root``.

    Entries that vanish mid-walk (concurrent writers/cleanup) are skipped.
    """
    files: list[CachedFile] = []
    pending = [root]
    while pending:
        current = pending.pop()
        try:
            entries = list(os.scandir(current))
        except (FileNotFoundError, NotADirectoryError):
            continue
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    pending.append(Path(entry.path))
                    continue
                if not entry.is_file(follow_symlinks=False):
                    continue
                st = entry.stat(follow_symlinks=False)
            except FileNotFoundError:
                continue
            files.append(CachedFile(Path(entry.path), st.st_size, st.st_mtime))
    return files


def sweep_cache_dir(
    root: str | Path,
    max_bytes: int = DEFAULT_MAX_BYTES,
    *,
    target_ratio: float = DEFAULT_TARGET_RATIO,
) -> SweepReport:
    """Evict least recently touched files until usage <= target_ratio * max_bytes.

    Nothing is deleted while the total stays within ``max_bytes``. Per-file
    deletion failures are logged and skipped.
    """
    files = collect_files(Path(root))
    total = sum(f.size for f in files)
    log.info(
        "image_cache_sweep_scanned",
        root=str(root),
        files=len(files),
        total_mb=round(total / 1024 / 1024, 2),
    )
    if total <= max_bytes:
        return SweepReport(total_bytes=total, file_count=len(files))

    to_free = total - max_bytes * target_ratio
    deleted_files = 0
    deleted_bytes = 0
    for f in sorted(files, key=lambda f: f.mtime):
        if deleted_bytes >= to_free:
            break
        try:
            f.path.unlink()
        except FileNotFoundError:
            # Already gone; it no longer counts towards the total either.
            deleted_bytes += f.size
            continue
        except OSError as e:
            log.warning("image_cache_delete_failed", path=str(f.path), error=str(e))
            continue
        deleted_files += 1
        deleted_bytes += f.size

    log.info(
        "image_cache_sweep_trimmed",
        deleted_files=deleted_files,
        deleted_mb=round(deleted_bytes / 1024 / 1024, 2),
    )
    return SweepReport(
        total_bytes=total,
        file_count=len(files),
        deleted_files=deleted_files,
        deleted_bytes=deleted_bytes,
    )


class CacheSweeper:
    """Background worker that runs sweeps requested over a queue.

    Requests are posted with ``request_sweep()`` (non-blocking); the worker
    coalesces requests that piled up while a sweep was running. A failing
    sweep is logged and the worker keeps consuming.

    Usage::

        sweeper = CacheSweeper(root)
        sweeper.start()
        ...
        sweeper.request_sweep()
        ...
        await sweeper.stop()
    """

    def __init__(
        self,
        root: str | Path,
        *,
        max_bytes: int = DEFAULT_MAX_BYTES,
        target_ratio: float = DEFAULT_TARGET_RATIO,
    ) -> None:
        self.root = Path(root)
        self.max_bytes = max_bytes
        self.target_ratio = target_ratio
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self.last_report: SweepReport | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="image-cache-sweeper")
        log.info("image_cache_sweeper_started", root=str(self.root))

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        log.info("image_cache_sweeper_stopped")

    def request_sweep(self, reason: str = "insert_threshold") -> None:
        self._queue.put_nowait(reason)
        log.debug("image_cache_sweep_requested", reason=reason)

    async def wait_idle(self) -> None:
        """Block until every posted request has been processed."""
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            reason = await self._queue.get()
            coalesced = 0
            while not self._queue.empty():
                self._queue.get_nowait()
                coalesced += 1
            try:
                self.last_report = await asyncio.to_thread(
                    sweep_cache_dir,
                    self.root,
                    self.max_bytes,
                    target_ratio=self.target_ratio,
                )
            except Exception:
                log.error("image_cache_sweep_failed", reason=reason, exc_info=True)
            finally:
                for _ in range(coalesced + 1):
                    self._queue.task_done()
