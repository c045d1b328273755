"""Termination signal handling.

A :class:`SignalWatcher` subscribes to SIGINT and SIGTERM once and publishes
the first one on a :class:`ShutdownToken`. The token is a broadcast one-shot:
every waiter observes the same trigger, and later triggers are ignored, so the
first signal wins and exactly one shutdown sequence runs.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import FrameType
from typing import Any, Callable, Final, Iterable, Optional

from greetbot.logging.config import ContextLoggerAdapter, bind_logger

__all__: list[str] = [
    "DEFAULT_SIGNALS",
    "ShutdownSignal",
    "ShutdownToken",
    "SignalWatcher",
]

_LOG: Final[logging.Logger] = logging.getLogger(__name__)

DEFAULT_SIGNALS: Final[tuple[signal.Signals, ...]] = (signal.SIGINT, signal.SIGTERM)


@dataclass(frozen=True, slots=True)
class ShutdownSignal:
    """Why and when shutdown was requested.

    :param name: the signal name (``SIGTERM``) or another trigger such as ``serve_exit``
    :param signum: the signal number, ``None`` for non-signal triggers
    :param received_at: arrival time (UTC)
    """

    name: str
    signum: Optional[int] = None
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_signal(cls, sig: signal.Signals | int) -> "ShutdownSignal":
        sig = signal.Signals(sig)
        return cls(name=sig.name, signum=int(sig))


class ShutdownToken:
    """One-shot shutdown notification that any number of tasks can await."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._signal: Optional[ShutdownSignal] = None

    @property
    def triggered(self) -> bool:
        return self._signal is not None

    @property
    def signal(self) -> Optional[ShutdownSignal]:
        """The trigger that won, if any."""
        return self._signal

    def trigger(self, shutdown_signal: ShutdownSignal) -> bool:
        """Publish ``shutdown_signal``; returns False if the token already fired."""
        if self._signal is not None:
            return False
        self._signal = shutdown_signal
        self._event.set()
        return True

    async def wait(self) -> ShutdownSignal:
        await self._event.wait()
        assert self._signal is not None
        return self._signal


class SignalWatcher:
    """Forward termination signals to a :class:`ShutdownToken`.

    Examples
    --------
    .. code-block:: python

        token = ShutdownToken()
        watcher = SignalWatcher(token)
        watcher.install()
        try:
            received = await token.wait()
        finally:
            watcher.uninstall()
    """

    def __init__(
        self,
        token: ShutdownToken,
        logger: Optional[logging.Logger | ContextLoggerAdapter] = None,
        signals: Iterable[signal.Signals] = DEFAULT_SIGNALS,
    ) -> None:
        self._token = token
        self._logger = bind_logger(logger or _LOG, context="signal_watcher")
        self._signals = tuple(signals)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_handlers: dict[signal.Signals, Any] = {}
        self._previous_handlers: dict[signal.Signals, Any] = {}

    @property
    def installed(self) -> bool:
        return bool(self._loop_handlers or self._previous_handlers)

    def install(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Subscribe to the configured signals on ``loop`` (default: the running loop)."""
        if self.installed:
            return
        self._loop = loop or asyncio.get_running_loop()
        for sig in self._signals:
            previous = signal.getsignal(sig)
            try:
                self._loop.add_signal_handler(sig, self._on_signal, sig)
                self._loop_handlers[sig] = previous
            except (NotImplementedError, RuntimeError, ValueError):
                # Loops without add_signal_handler (Windows) get a plain handler that hops onto the loop
                try:
                    self._previous_handlers[sig] = signal.signal(sig, self._threadsafe_handler())
                except ValueError as e:
                    self._logger.warning("cannot subscribe to %s: %s", sig.name, e)

    def uninstall(self) -> None:
        """Restore the handlers that were active before :meth:`install`."""
        if self._loop is not None:
            for sig, previous in self._loop_handlers.items():
                self._loop.remove_signal_handler(sig)
                # remove_signal_handler leaves SIG_DFL or default_int_handler behind
                if previous is not None:
                    signal.signal(sig, previous)
        for sig, previous in self._previous_handlers.items():
            signal.signal(sig, previous)
        self._loop_handlers.clear()
        self._previous_handlers.clear()

    def _threadsafe_handler(self) -> Callable[[int, Optional[FrameType]], None]:
        loop = self._loop
        assert loop is not None

        def _handler(signum: int, frame: Optional[FrameType]) -> None:
            loop.call_soon_threadsafe(self._on_signal, signal.Signals(signum))

        return _handler

    def _on_signal(self, sig: signal.Signals) -> None:
        shutdown_signal = ShutdownSignal.from_signal(sig)
        if self._token.trigger(shutdown_signal):
            self._logger.info("received signal signal=%s", shutdown_signal.name)
        else:
            self._logger.warning("shutdown already in progress; ignoring signal signal=%s", shutdown_signal.name)
