"""Process lifecycle: listener ownership, signal handling and graceful shutdown."""

from .manager import LifecycleManager, LifecycleState, ServerStartupError, ShutdownTimeoutError
from .signals import ShutdownSignal, ShutdownToken, SignalWatcher

__all__ = [
    "LifecycleManager",
    "LifecycleState",
    "ServerStartupError",
    "ShutdownSignal",
    "ShutdownTimeoutError",
    "ShutdownToken",
    "SignalWatcher",
]
