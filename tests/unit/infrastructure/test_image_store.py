"""Tests for ImageCacheStore (on-disk TMDB image cache)."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest
import respx

from vodhub.domain.entities import ImageFetchFailed, InvalidImageRequest
from vodhub.infrastructure.images import ImageCacheStore, validate_image_key

_CDN = "https://image.tmdb.org/t/p"
_PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class _BrokenStream(httpx.AsyncByteStream):
    """Sends one chunk, then the connection drops."""

    async def __aiter__(self):
        yield b"partial-bytes"
        raise httpx.ReadError("connection reset")


@pytest.fixture()
def http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient()


@pytest.fixture()
def root(tmp_path: Path) -> Path:
    return tmp_path / "images"


@pytest.fixture()
def store(root: Path, http_client: httpx.AsyncClient) -> ImageCacheStore:
    return ImageCacheStore(root=root, http_client=http_client)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    @pytest.mark.parametrize(
        "filename", ["../secret", "a/b.jpg", "..", ".", "", "a b.jpg", "x\\y.jpg", "%2e%2e"]
    )
    def test_rejects_unsafe_filenames(self, filename: str) -> None:
        with pytest.raises(InvalidImageRequest):
            validate_image_key("w500", filename)

    def test_rejects_unknown_size(self) -> None:
        with pytest.raises(InvalidImageRequest):
            validate_image_key("w999", "poster.jpg")

    def test_accepts_tmdb_filename(self) -> None:
        validate_image_key("original", "kqjL17yufvn9OVLyXYpvtyrFfak.jpg")

    @respx.mock
    @pytest.mark.asyncio()
    async def test_rejected_before_any_io(self, store: ImageCacheStore, root: Path) -> None:
        route = respx.get(url__startswith=_CDN)

        with pytest.raises(InvalidImageRequest):
            await store.get("w500", "../../etc/passwd")
        with pytest.raises(InvalidImageRequest):
            await store.get("huge", "poster.jpg")

        assert not root.exists()
        assert route.call_count == 0


# ---------------------------------------------------------------------------
# Hit / miss
# ---------------------------------------------------------------------------


class TestHitMiss:
    @respx.mock
    @pytest.mark.asyncio()
    async def test_miss_then_hit(self, store: ImageCacheStore, root: Path) -> None:
        route = respx.get(f"{_CDN}/w500/poster.jpg").respond(content=_PNG)

        path = await store.get("w500", "poster.jpg")

        assert path == root / "w500" / "poster.jpg"
        assert path.read_bytes() == _PNG
        assert route.call_count == 1

        os.utime(path, (1_000_000, 1_000_000))
        again = await store.get("w500", "poster.jpg")

        assert again == path
        assert route.call_count == 1
        assert path.stat().st_mtime > 1_000_000

    @respx.mock
    @pytest.mark.asyncio()
    async def test_empty_cached_file_is_a_miss(
        self, store: ImageCacheStore, root: Path
    ) -> None:
        stale = root / "w300" / "poster.jpg"
        stale.parent.mkdir(parents=True)
        stale.write_bytes(b"")
        route = respx.get(f"{_CDN}/w300/poster.jpg").respond(content=_PNG)

        path = await store.get("w300", "poster.jpg")

        assert route.call_count == 1
        assert path.read_bytes() == _PNG

    @respx.mock
    @pytest.mark.asyncio()
    async def test_custom_upstream_base(
        self, root: Path, http_client: httpx.AsyncClient
    ) -> None:
        store = ImageCacheStore(
            root=root, http_client=http_client, upstream_base="https://cdn.example.com/t/p/"
        )
        route = respx.get("https://cdn.example.com/t/p/w780/b.jpg").respond(content=_PNG)

        await store.get("w780", "b.jpg")

        assert route.call_count == 1


# ---------------------------------------------------------------------------
# Failures never leave a file behind
# ---------------------------------------------------------------------------


class TestFailures:
    @respx.mock
    @pytest.mark.asyncio()
    async def test_upstream_404(self, store: ImageCacheStore, root: Path) -> None:
        respx.get(f"{_CDN}/w500/missing.jpg").respond(status_code=404)

        with pytest.raises(ImageFetchFailed):
            await store.get("w500", "missing.jpg")

        assert not (root / "w500" / "missing.jpg").exists()

    @respx.mock
    @pytest.mark.asyncio()
    async def test_interrupted_transfer_removes_partial_file(
        self, store: ImageCacheStore, root: Path
    ) -> None:
        respx.get(f"{_CDN}/w500/cut.jpg").mock(
            return_value=httpx.Response(200, stream=_BrokenStream())
        )

        with pytest.raises(ImageFetchFailed):
            await store.get("w500", "cut.jpg")

        assert not (root / "w500" / "cut.jpg").exists()
        assert store.pending_insertions == 0

    @respx.mock
    @pytest.mark.asyncio()
    async def test_timeout(self, store: ImageCacheStore, root: Path) -> None:
        respx.get(f"{_CDN}/w500/slow.jpg").mock(side_effect=httpx.ReadTimeout("slow"))

        with pytest.raises(ImageFetchFailed):
            await store.get("w500", "slow.jpg")

        assert not (root / "w500" / "slow.jpg").exists()

    @respx.mock
    @pytest.mark.asyncio()
    async def test_empty_body(self, store: ImageCacheStore, root: Path) -> None:
        respx.get(f"{_CDN}/w500/empty.jpg").respond(content=b"")

        with pytest.raises(ImageFetchFailed):
            await store.get("w500", "empty.jpg")

        assert not (root / "w500" / "empty.jpg").exists()

    @respx.mock
    @pytest.mark.asyncio()
    async def test_retry_after_failure_fetches_again(self, store: ImageCacheStore) -> None:
        route = respx.get(f"{_CDN}/w500/flaky.jpg")
        route.side_effect = [httpx.Response(500), httpx.Response(200, content=_PNG)]

        with pytest.raises(ImageFetchFailed):
            await store.get("w500", "flaky.jpg")
        path = await store.get("w500", "flaky.jpg")

        assert path.read_bytes() == _PNG
        assert route.call_count == 2

    @respx.mock
    @pytest.mark.asyncio()
    async def test_unwritable_cache_dir(
        self, tmp_path: Path, http_client: httpx.AsyncClient
    ) -> None:
        blocker = tmp_path / "images"
        blocker.write_text("not a directory", encoding="utf-8")
        route = respx.get(f"{_CDN}/w500/poster.jpg").respond(content=_PNG)
        store = ImageCacheStore(root=blocker, http_client=http_client)

        with pytest.raises(ImageFetchFailed):
            await store.get("w500", "poster.jpg")

        assert not route.called
        assert store.pending_insertions == 0


# ---------------------------------------------------------------------------
# Concurrency + eviction trigger
# ---------------------------------------------------------------------------


class TestSingleFlight:
    @respx.mock
    @pytest.mark.asyncio()
    async def test_concurrent_misses_share_one_download(
        self, store: ImageCacheStore
    ) -> None:
        route = respx.get(f"{_CDN}/w500/hot.jpg").respond(content=_PNG)

        paths = await asyncio.gather(*(store.get("w500", "hot.jpg") for _ in range(5)))

        assert len(set(paths)) == 1
        assert route.call_count == 1
        assert store.pending_insertions == 1


class TestSweepTrigger:
    @respx.mock
    @pytest.mark.asyncio()
    async def test_requests_sweep_every_threshold_insertions(
        self, root: Path, http_client: httpx.AsyncClient
    ) -> None:
        respx.get(url__startswith=_CDN).respond(content=_PNG)
        sweeper = MagicMock()
        store = ImageCacheStore(
            root=root, http_client=http_client, sweeper=sweeper, sweep_threshold=3
        )

        for i in range(2):
            await store.get("w300", f"{i}.jpg")
        sweeper.request_sweep.assert_not_called()
        assert store.pending_insertions == 2

        await store.get("w300", "2.jpg")
        sweeper.request_sweep.assert_called_once()
        assert store.pending_insertions == 0

    @respx.mock
    @pytest.mark.asyncio()
    async def test_hits_do_not_count(self, root: Path, http_client: httpx.AsyncClient) -> None:
        respx.get(url__startswith=_CDN).respond(content=_PNG)
        sweeper = MagicMock()
        store = ImageCacheStore(
            root=root, http_client=http_client, sweeper=sweeper, sweep_threshold=2
        )

        for _ in range(5):
            await store.get("w300", "same.jpg")

        assert store.pending_insertions == 1
        sweeper.request_sweep.assert_not_called()
