"""Track in-flight requests so shutdown can drain them first."""

from __future__ import annotations

import asyncio

import structlog

log = structlog.get_logger(__name__)


class GracefulShutdown:
    """In-flight request counter with a drain barrier and a readiness flag.

    The request middleware brackets every request with ``request_started`` /
    ``request_finished``; the lifespan calls ``mark_ready`` after wiring and
    ``wait_for_drain`` before tearing resources down. Open SSE streams count
    as in-flight until the response body finishes.
    """

    def __init__(self) -> None:
        self._active = 0
        self._ready = False
        self._shutting_down = False
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def active_requests(self) -> int:
        return self._active

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    @property
    def is_ready(self) -> bool:
        return self._ready and not self._shutting_down

    def mark_ready(self) -> None:
        self._ready = True

    def request_started(self) -> None:
        self._active += 1
        self._idle.clear()

    def request_finished(self) -> None:
        self._active = max(0, self._active - 1)
        if self._active == 0:
            self._idle.set()

    async def wait_for_drain(self, *, timeout: float = 10.0) -> bool:
        """Stop accepting readiness and wait for in-flight requests.

        Returns True when everything drained, False on timeout.
        """
        self._shutting_down = True
        if self._active == 0:
            return True
        log.info("graceful_shutdown_draining", active_requests=self._active)
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
        except TimeoutError:
            log.warning(
                "graceful_shutdown_timeout",
                remaining_requests=self._active,
                timeout=timeout,
            )
            return False
        log.info("graceful_shutdown_drained")
        return True
