"""ASGI middleware: per-request logging context."""

from __future__ import annotations

from starlette.types import ASGIApp, Receive, Scope, Send

from core import bind_contextvars, clear_contextvars


class RequestContextMiddleware:
    """Binds method, path and client address to every log line of a request."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        client = scope.get("client")
        clear_contextvars()
        bind_contextvars(
            method=scope.get("method"),
            path=scope.get("path"),
            client=client[0] if client else None,
        )
        try:
            await self.app(scope, receive, send)
        finally:
            clear_contextvars()
