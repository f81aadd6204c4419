"""
Server lifecycle: Starting -> Serving -> Draining -> Stopped.

The signal receiver is armed before the socket is bound, so a SIGINT/SIGTERM
arriving during startup is queued rather than killing the process. Draining
runs under a cancel scope whose deadline is the grace period: ``run()``
returns as soon as in-flight connections finish, or raises
``ShutdownTimeout`` once the deadline cancels them.
"""

from __future__ import annotations

import logging
import signal
import sys
from enum import Enum, auto
from typing import AsyncIterator

import anyio

from .config import DEFAULT_CONFIG, ServerConfig
from .errors import BindError, ServerError, ShutdownTimeout
from .handlers import build_router
from .http.router import Router
from .http.server import HttpServer
from .log import configure_logging


logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class LifecycleState(Enum):
    STARTING = auto()
    SERVING = auto()
    DRAINING = auto()
    STOPPED = auto()


class Lifecycle:
    """
    Runs one HttpServer from bind to graceful stop.

    Attributes:
        state: Current ``LifecycleState``
        port: Bound port, set once the listener is up
        serving: Event set when the server starts accepting connections
    """

    def __init__(self, config: ServerConfig = DEFAULT_CONFIG, router: Router | None = None):
        self.config = config
        self.server = HttpServer(
            router or build_router(config),
            host=config.host,
            port=config.port,
            max_header_bytes=config.max_header_bytes,
            max_body_bytes=config.max_body_bytes,
        )
        self.state = LifecycleState.STARTING
        self.port: int | None = None
        self.serving = anyio.Event()

    async def run(self) -> None:
        with anyio.open_signal_receiver(*SHUTDOWN_SIGNALS) as signals:
            try:
                self.port = await self.server.listen()
            except BindError:
                self.state = LifecycleState.STOPPED
                raise

            with anyio.CancelScope() as drain_scope:
                async with anyio.create_task_group() as tg:
                    await tg.start(self.server.serve)
                    self.state = LifecycleState.SERVING
                    logger.info("Server is listening on http://localhost:%d/", self.port)
                    self.serving.set()

                    signum = await _next_signal(signals)
                    logger.info("Received %s", signal.Signals(signum).name)
                    logger.info("Shutting down the server...")

                    self.state = LifecycleState.DRAINING
                    drain_scope.deadline = anyio.current_time() + self.config.shutdown_timeout
                    self.server.close()
                    logger.debug(
                        "draining %d connection(s)", self.server.active_connections
                    )

            self.state = LifecycleState.STOPPED
            if drain_scope.cancelled_caught:
                raise ShutdownTimeout(self.config.shutdown_timeout)

        logger.info("Server gracefully stopped")


async def _next_signal(signals: AsyncIterator[int]) -> int:
    async for signum in signals:
        return signum
    raise RuntimeError("signal receiver closed")


async def _serve(config: ServerConfig) -> None:
    await Lifecycle(config).run()


def main(config: ServerConfig = DEFAULT_CONFIG) -> None:
    """Process entry point: exit 0 on a clean stop, 1 on a fatal error."""
    configure_logging()
    try:
        anyio.run(_serve, config)
    except BindError as e:
        logger.critical("listen: %s", e)
        sys.exit(1)
    except ServerError as e:
        logger.critical("Server shutdown failed: %s", e)
        sys.exit(1)
