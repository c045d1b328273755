"""HTTP server lifecycle management.

The :class:`LifecycleManager` owns the listening socket and the uvicorn server
and drives one shutdown sequence per process:

.. code-block:: text

    STARTING ──bind ok──> SERVING ──signal / serve exit──> SHUTTING_DOWN ──both done──> STOPPED
        │
        └──bind error──> ServerStartupError

Shutdown Sequence
=================
1. The :class:`~greetbot.lifecycle.signals.ShutdownToken` fires, from a
   SIGINT/SIGTERM or because the serve task ended on its own.
2. uvicorn stops accepting and drains in-flight requests for up to the grace
   period (25 s). Exceeding it is recorded as :class:`ShutdownTimeoutError`
   and the server is forced to exit; it is never raised.
3. Once both the serve task and the graceful stop have completed, the socket is
   closed and a single summary line logs ``serve_err`` and ``shutdown_err``.

Examples
--------
.. code-block:: python

    import asyncio
    from greetbot.lifecycle.manager import LifecycleManager

    manager = LifecycleManager(app, port=3000)
    asyncio.run(manager.run())
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import socket
from enum import Enum
from typing import Final, Iterator, Optional

import uvicorn
from fastapi import FastAPI

from greetbot.logging.config import ContextLoggerAdapter, bind_logger

from .signals import ShutdownSignal, ShutdownToken, SignalWatcher

__all__: list[str] = [
    "DEFAULT_GRACE_PERIOD",
    "IDLE_TIMEOUT",
    "LifecycleManager",
    "LifecycleState",
    "ServerStartupError",
    "ShutdownTimeoutError",
]

_LOG: Final[logging.Logger] = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD: Final[float] = 25.0
IDLE_TIMEOUT: Final[int] = 60
# How long a forced exit may take before the serve task is cancelled outright
_FORCE_EXIT_TIMEOUT: Final[float] = 5.0


class LifecycleState(str, Enum):
    STARTING = "starting"
    SERVING = "serving"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class ServerStartupError(RuntimeError):
    """The listening socket could not be opened."""


class ShutdownTimeoutError(TimeoutError):
    """In-flight requests did not finish within the grace period."""


class _Server(uvicorn.Server):
    """uvicorn server that leaves signal handling to the lifecycle manager."""

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield

    def force_close(self) -> None:
        """Abort in-flight requests and drop their connections."""
        self.force_exit = True
        for task in list(self.server_state.tasks):
            task.cancel()
        for connection in list(self.server_state.connections):
            transport = getattr(connection, "transport", None)
            if transport is not None:
                transport.close()


class LifecycleManager:
    """Run the FastAPI app on a pre-bound socket until shutdown is requested.

    Parameters
    ----------
    app : FastAPI
        The application to serve
    host : str
        Interface to bind (default: all interfaces)
    port : int
        TCP port to bind; 0 picks a free port
    grace_period : float
        Seconds in-flight requests get to finish once shutdown starts
    logger : Optional[logging.Logger | ContextLoggerAdapter]
        Base logger
    token : Optional[ShutdownToken]
        Shutdown token to observe; a new one is created when omitted
    install_signal_handlers : bool
        Subscribe to SIGINT/SIGTERM while running
    """

    def __init__(
        self,
        app: FastAPI,
        *,
        host: str = "0.0.0.0",
        port: int = 3000,
        grace_period: float = DEFAULT_GRACE_PERIOD,
        logger: Optional[logging.Logger | ContextLoggerAdapter] = None,
        token: Optional[ShutdownToken] = None,
        install_signal_handlers: bool = True,
    ) -> None:
        self._app = app
        self._host = host
        self._port = port
        self._grace_period = grace_period
        self._logger = bind_logger(logger or _LOG, context="lifecycle")
        self._install_signal_handlers = install_signal_handlers

        self.token: ShutdownToken = token or ShutdownToken()
        self.state: LifecycleState = LifecycleState.STARTING
        self.serve_error: Optional[BaseException] = None
        self.shutdown_error: Optional[BaseException] = None

        self._socket: Optional[socket.socket] = None
        self._server: Optional[_Server] = None
        self._serving = asyncio.Event()
        self._stopped = asyncio.Event()
        self._ran = False

    @property
    def address(self) -> Optional[tuple[str, int]]:
        """The bound ``(host, port)`` while the socket is open."""
        if self._socket is None or self._socket.fileno() == -1:
            return None
        host, port = self._socket.getsockname()[:2]
        return host, port

    async def wait_serving(self) -> None:
        """Block until the server accepts connections."""
        await self._serving.wait()

    async def wait_stopped(self) -> None:
        await self._stopped.wait()

    def request_shutdown(self, reason: str = "requested") -> bool:
        """Start the shutdown sequence without a signal; False if it already started."""
        return self.token.trigger(ShutdownSignal(name=reason))

    def bind(self) -> socket.socket:
        """Open the listening socket.

        Raises
        ------
        ServerStartupError
            If the address cannot be bound
        """
        socket_addr = f"{self._host}:{self._port}"
        self._logger.info("binding to TCP socket addr=%s", socket_addr)

        family = socket.AF_INET6 if ":" in self._host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self._host, self._port))
        except OSError as e:
            sock.close()
            raise ServerStartupError(f"failed to open HTTP socket on {socket_addr}: {e}") from e

        sock.set_inheritable(True)
        self._socket = sock
        return sock

    async def run(self) -> None:
        """Serve until shutdown completes.

        Raises
        ------
        ServerStartupError
            If the socket cannot be bound; nothing is served in that case
        """
        assert not self._ran, "A lifecycle manager runs at most once."
        self._ran = True

        sock = self.bind()
        config = uvicorn.Config(
            app=self._app,
            timeout_keep_alive=IDLE_TIMEOUT,
            log_config=None,
            lifespan="off",
        )
        self._server = _Server(config=config)

        watcher: Optional[SignalWatcher] = None
        if self._install_signal_handlers:
            watcher = SignalWatcher(self.token, self._logger)
            watcher.install()

        serve_task = asyncio.create_task(self._serve(sock), name="greetbot-serve")
        shutdown_task = asyncio.create_task(self._shutdown_when_requested(serve_task), name="greetbot-shutdown")
        try:
            await self._mark_serving(serve_task)
            # Completion requires both the accept loop and the graceful stop
            await asyncio.wait({serve_task, shutdown_task})
        finally:
            for task in (serve_task, shutdown_task):
                if not task.done():
                    task.cancel()
            if watcher is not None:
                watcher.uninstall()
            self._close_socket()

        self.state = LifecycleState.STOPPED
        self._stopped.set()
        self._logger.info(
            "server shut down serve_err=%s shutdown_err=%s",
            _describe(self.serve_error),
            _describe(self.shutdown_error),
        )

    async def _mark_serving(self, serve_task: asyncio.Task) -> None:
        assert self._server is not None
        while not self._server.started and not serve_task.done():
            await asyncio.sleep(0.01)
        if self._server.started and self.state is LifecycleState.STARTING:
            self.state = LifecycleState.SERVING
            self._serving.set()
            address = self.address
            self._logger.info("serving HTTP addr=%s", f"{address[0]}:{address[1]}" if address else "closed")

    async def _serve(self, sock: socket.socket) -> None:
        assert self._server is not None
        try:
            await self._server.serve(sockets=[sock])
            if not self.token.triggered:
                self.serve_error = RuntimeError("HTTP server exited before shutdown was requested")
        except Exception as e:
            self.serve_error = e
            self._logger.error("HTTP server failed: %s", e)
        finally:
            if self.token.trigger(ShutdownSignal(name="serve_exit")):
                self._logger.warning("HTTP server stopped on its own; shutting down")

    async def _shutdown_when_requested(self, serve_task: asyncio.Task) -> None:
        assert self._server is not None
        shutdown_signal = await self.token.wait()
        self.state = LifecycleState.SHUTTING_DOWN
        self._logger.info("shutting HTTP server down gracefully signal=%s", shutdown_signal.name)

        self._server.should_exit = True
        done, _ = await asyncio.wait({serve_task}, timeout=self._grace_period)
        if done:
            return

        self.shutdown_error = ShutdownTimeoutError(
            f"in-flight requests still running after {self._grace_period:g}s grace period"
        )
        self._logger.error("failed to gracefully shut down HTTP server: %s", self.shutdown_error)
        self._server.force_close()
        done, _ = await asyncio.wait({serve_task}, timeout=_FORCE_EXIT_TIMEOUT)
        if not done:
            serve_task.cancel()
            await asyncio.wait({serve_task})

    def _close_socket(self) -> None:
        if self._socket is not None:
            self._socket.close()


def _describe(error: Optional[BaseException]) -> str:
    if error is None:
        return "None"
    return f"{type(error).__name__}({error})"
