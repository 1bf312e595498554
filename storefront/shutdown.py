"""Graceful shutdown handling for long-running bulk ingests.

The first SIGINT/SIGTERM asks running work to wind down (the bulk job
stops taking new handles and lets in-flight ones finish); a second one
forces exit.
"""

import signal
import sys
import threading
from typing import Callable, List, Optional

from storefront.logging_config import get_logger

__all__ = [
    "ShutdownHandler",
    "get_shutdown_handler",
    "shutdown_requested",
    "on_shutdown",
]

logger = get_logger("shutdown")


class ShutdownHandler:
    """Handles graceful shutdown on SIGINT/SIGTERM signals.

    Usage:
        handler = get_shutdown_handler().install()
        handler.on_shutdown(manager.cancel)
        try:
            await manager.wait()
        finally:
            handler.uninstall()
    """

    _instance: Optional["ShutdownHandler"] = None
    _lock = threading.Lock()

    def __init__(self) -> None:
        self._shutdown_requested = threading.Event()
        self._callbacks: List[Callable[[], object]] = []
        self._original_sigint = None
        self._original_sigterm = None
        self._installed = False

    @classmethod
    def get_instance(cls) -> "ShutdownHandler":
        """Get or create the singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def install(self) -> "ShutdownHandler":
        """Install signal handlers.

        Returns:
            Self for chaining
        """
        if self._installed:
            return self

        self._original_sigint = signal.getsignal(signal.SIGINT)
        self._original_sigterm = signal.getsignal(signal.SIGTERM)

        signal.signal(signal.SIGINT, self._handle_signal)
        signal.signal(signal.SIGTERM, self._handle_signal)

        self._installed = True
        return self

    def uninstall(self) -> None:
        """Restore original signal handlers and forget callbacks."""
        if not self._installed:
            return

        if self._original_sigint is not None:
            signal.signal(signal.SIGINT, self._original_sigint)
        if self._original_sigterm is not None:
            signal.signal(signal.SIGTERM, self._original_sigterm)

        self._callbacks.clear()
        self._installed = False

    def _handle_signal(self, signum: int, frame) -> None:
        signal_name = "SIGINT" if signum == signal.SIGINT else "SIGTERM"
        print(f"\n\n⚠️  Received {signal_name} - cancelling bulk ingest...")
        print("    In-flight products will finish. Press Ctrl+C again to force quit.\n")

        self.request_shutdown()

        # On second signal, force exit
        signal.signal(signum, self._force_exit)

    def _force_exit(self, signum: int, frame) -> None:
        print("\n❌ Force quitting...")
        sys.exit(1)

    def request_shutdown(self) -> None:
        """Set the shutdown flag and run the registered callbacks once."""
        if self._shutdown_requested.is_set():
            return
        self._shutdown_requested.set()
        for callback in self._callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(f"Shutdown callback failed: {e}")

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested.is_set()

    def on_shutdown(self, callback: Callable[[], object]) -> None:
        """Register a callback to run when shutdown is requested.

        Args:
            callback: Called with no arguments, e.g. ``JobManager.cancel``
        """
        self._callbacks.append(callback)

    def reset(self) -> None:
        """Reset shutdown state (for testing or reuse)."""
        self._shutdown_requested.clear()
        self._callbacks.clear()


# Module-level convenience functions
def get_shutdown_handler() -> ShutdownHandler:
    """Get the global shutdown handler instance."""
    return ShutdownHandler.get_instance()


def shutdown_requested() -> bool:
    return get_shutdown_handler().shutdown_requested


def on_shutdown(callback: Callable[[], object]) -> None:
    get_shutdown_handler().on_shutdown(callback)
