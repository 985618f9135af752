"""Graceful shutdown for the long-running import loops.

The first SIGINT/SIGTERM sets a flag that the Amazon and Rakuten loops check
between items; a second one exits immediately.
"""

import signal
import sys
import threading
from typing import Callable, List, Optional

from elfbaby.logging_config import get_logger

__all__ = [
    "ShutdownHandler",
    "get_shutdown_handler",
    "shutdown_requested",
    "register_cleanup",
]

logger = get_logger("shutdown")


class ShutdownHandler:
    """Process-wide shutdown flag driven by signals.

    Usage:
        handler = get_shutdown_handler().install()
        for item in items:
            if handler.shutdown_requested:
                break
            process(item)
        handler.uninstall()
    """

    _instance: Optional["ShutdownHandler"] = None
    _lock = threading.Lock()

    def __init__(self) -> None:
        self._event = threading.Event()
        self._cleanup_callbacks: List[Callable[[], None]] = []
        self._original_handlers: dict = {}
        self._installed = False

    @classmethod
    def get_instance(cls) -> "ShutdownHandler":
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def install(self) -> "ShutdownHandler":
        """Install SIGINT/SIGTERM handlers. Only valid on the main thread."""
        if self._installed:
            return self
        for signum in (signal.SIGINT, signal.SIGTERM):
            self._original_handlers[signum] = signal.getsignal(signum)
            signal.signal(signum, self._handle_signal)
        self._installed = True
        return self

    def uninstall(self) -> None:
        """Restore the handlers that were active before install()."""
        if not self._installed:
            return
        for signum, handler in self._original_handlers.items():
            if handler is not None:
                signal.signal(signum, handler)
        self._original_handlers.clear()
        self._installed = False

    def _handle_signal(self, signum: int, frame) -> None:
        name = "SIGINT" if signum == signal.SIGINT else "SIGTERM"
        logger.warning(f"Received {name}, finishing the current item (repeat to force quit)")
        self._event.set()
        signal.signal(signum, self._force_exit)

    def _force_exit(self, signum: int, frame) -> None:
        logger.error("Force quitting")
        self.cleanup()
        sys.exit(1)

    @property
    def shutdown_requested(self) -> bool:
        return self._event.is_set()

    def request_shutdown(self) -> None:
        """Set the flag without a signal (used by tests and callers)."""
        self._event.set()

    def register_cleanup(self, callback: Callable[[], None]) -> None:
        self._cleanup_callbacks.append(callback)

    def cleanup(self) -> None:
        """Run registered callbacks once; a failing callback does not stop the rest."""
        for callback in self._cleanup_callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(f"Cleanup callback failed: {e}")
        self._cleanup_callbacks.clear()

    def reset(self) -> None:
        self._event.clear()


def get_shutdown_handler() -> ShutdownHandler:
    return ShutdownHandler.get_instance()


def shutdown_requested() -> bool:
    return get_shutdown_handler().shutdown_requested


def register_cleanup(callback: Callable[[], None]) -> None:
    get_shutdown_handler().register_cleanup(callback)
