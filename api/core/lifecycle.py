"""Process lifecycle: serving, graceful shutdown, forced exit.

Outside development, SIGTERM/SIGINT stop the listener, let in-flight
requests finish and exit. A shutdown that has not drained after
SHUTDOWN_GRACE_SECONDS ends the process regardless.

In development no handlers are installed, so signals keep their default
behaviour and the process stops immediately.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal
from collections.abc import Callable, Iterator
from typing import Protocol

import uvicorn
from starlette.types import ASGIApp

from core.config import Settings
from core.logger import get_logger

logger = get_logger(__name__)

SHUTDOWN_GRACE_SECONDS = 10.0

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class Server(Protocol):
    should_exit: bool
    force_exit: bool

    async def serve(self) -> None: ...


class GatewayServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to LifecycleManager."""

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield

    def install_signal_handlers(self) -> None:
        return None


class LifecycleManager:
    def __init__(
        self,
        server: Server,
        *,
        development: bool,
        grace_period: float = SHUTDOWN_GRACE_SECONDS,
        exit_func: Callable[[int], object] = os._exit,
    ) -> None:
        self.server = server
        self.development = development
        self.grace_period = grace_period
        self._exit_func = exit_func
        self._force_exit_handle: asyncio.TimerHandle | None = None
        self.shutting_down = False

    async def run(self) -> None:
        """Serve until the server stops, owning signal handling meanwhile."""
        loop = asyncio.get_running_loop()
        if not self.development:
            for sig in SHUTDOWN_SIGNALS:
                loop.add_signal_handler(sig, self.shutdown, sig)

        try:
            await self.server.serve()
        finally:
            if self._force_exit_handle is not None:
                self._force_exit_handle.cancel()
            if not self.development:
                for sig in SHUTDOWN_SIGNALS:
                    loop.remove_signal_handler(sig)

        if self.shutting_down:
            logger.info("shutdown.complete", detail="Closed out remaining connections")

    def shutdown(self, sig: signal.Signals | None = None) -> None:
        """Stop accepting connections and start the forced-exit countdown."""
        if self.shutting_down:
            return
        self.shutting_down = True

        logger.info(
            "shutdown.started",
            signal=sig.name if sig is not None else None,
            grace_period=self.grace_period,
        )
        self.server.should_exit = True
        self._force_exit_handle = asyncio.get_running_loop().call_later(
            self.grace_period, self._force_exit
        )

    def _force_exit(self) -> None:
        logger.error(
            "shutdown.forced",
            detail="Could not close connections in time, forcefully shutting down",
        )
        self.server.force_exit = True
        self._exit_func(1)


def build_server(app: ASGIApp, settings: Settings) -> GatewayServer:
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        timeout_graceful_shutdown=int(SHUTDOWN_GRACE_SECONDS),
        # Logging is configured by core.logger
        log_config=None,
    )
    return GatewayServer(config)


def serve(app: ASGIApp, settings: Settings) -> None:
    """Bind HOST:PORT and serve ``app`` until shutdown."""
    server = build_server(app, settings)
    manager = LifecycleManager(server, development=settings.is_development)

    logger.info(
        "server.starting",
        environment=settings.environment,
        host=settings.host,
        port=settings.port,
    )
    asyncio.run(manager.run())
