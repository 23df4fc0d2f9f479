"""ASGI middleware for request tracking and access logging."""

from __future__ import annotations

import time

import structlog
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from vodhub.infrastructure.graceful_shutdown import GracefulShutdown

log = structlog.get_logger(__name__)


class RequestTrackingMiddleware:
    """Counts in-flight requests and logs one ``http_request`` event each.

    Plain ASGI instead of ``BaseHTTPMiddleware``: a request stays in flight
    until its body has been fully sent, which matters for long-lived SSE
    responses.

    Args:
        app: ASGI application.
        shutdown: Tracker used by the lifespan to drain on stop.
    """

    def __init__(self, app: ASGIApp, shutdown: GracefulShutdown) -> None:
        self.app = app
        self._shutdown = shutdown

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        status_code = 500

        async def _send(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        self._shutdown.request_started()
        start = time.perf_counter()
        try:
            await self.app(scope, receive, _send)
        finally:
            self._shutdown.request_finished()
            client = scope.get("client")
            log.info(
                "http_request",
                method=scope["method"],
                path=scope["path"],
                query=scope.get("query_string", b"").decode("latin-1"),
                status_code=status_code,
                duration_ms=round((time.perf_counter() - start) * 1000.0, 2),
                client_host=client[0] if client else None,
            )
