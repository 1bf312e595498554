"""A dedicated asyncio event loop running on a daemon thread.

Synchronous callers (Flask request handlers) hand coroutines to the loop
and block on the result. Everything submitted runs on the one loop, so
shared state such as the product cache and the bulk job is only ever
touched from that loop's thread.
"""

import asyncio
import concurrent.futures
import threading
from typing import Any, Callable, Coroutine, Optional, TypeVar

from storefront.logging_config import get_logger

__all__ = ["BackgroundLoop"]

logger = get_logger("loop")

T = TypeVar("T")


class BackgroundLoop:
    """Owns an event loop on its own thread."""

    def __init__(self, name: str = "StorefrontLoop"):
        self.loop = asyncio.new_event_loop()
        self._started = threading.Event()
        self._thread = threading.Thread(target=self._run_loop, daemon=True, name=name)
        self._thread.start()
        self._started.wait()

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.call_soon(self._started.set)
        self.loop.run_forever()

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive() and self.loop.is_running()

    def submit(self, coro: Coroutine[Any, Any, T]) -> "concurrent.futures.Future[T]":
        """Schedule a coroutine on the loop without waiting for it."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def run(self, coro: Coroutine[Any, Any, T], timeout: Optional[float] = None) -> T:
        """Run a coroutine on the loop and block until it finishes.

        Exceptions raised by the coroutine propagate to the caller.
        """
        return self.submit(coro).result(timeout)

    def call(self, fn: Callable[..., T], *args: Any, timeout: Optional[float] = None) -> T:
        """Call a plain function on the loop thread and return its result."""

        async def invoke() -> T:
            return fn(*args)

        return self.run(invoke(), timeout)

    def stop(self, timeout: float = 5.0) -> None:
        if not self._thread.is_alive():
            return
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning(f"Event loop thread did not stop within {timeout}s")
        else:
            self.loop.close()
