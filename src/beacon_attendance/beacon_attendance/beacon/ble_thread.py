"""Dedicated BLE I/O thread with a persistent asyncio event loop.

Flask request handlers are synchronous and short-lived, while a beacon attempt
runs for tens of seconds and bleak (D-Bus on Linux) needs a loop that keeps
running between requests. BleThread owns that single loop.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class BleThread:
    """Daemon thread running one asyncio loop for all radio work."""

    def __init__(self, name: str = "ble-io"):
        self._name = name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._loop is not None and self._loop.is_running()

    def start(self) -> None:
        """Spawn the daemon thread and block until its loop is running."""
        if self.running:
            return
        ready = threading.Event()

        def _run():
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
            loop.set_exception_handler(self._exception_handler)
            self._loop = loop
            loop.call_soon(ready.set)
            loop.run_forever()
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()

        self._thread = threading.Thread(target=_run, daemon=True, name=self._name)
        self._thread.start()
        ready.wait()

    def submit(self, coro) -> concurrent.futures.Future:
        """Submit a coroutine to the BLE loop."""
        if self._loop is None:
            raise RuntimeError("BleThread not started")
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def call_soon(self, callback: Callable[[], None]) -> None:
        if self._loop is None:
            raise RuntimeError("BleThread not started")
        self._loop.call_soon_threadsafe(callback)

    def stop(self) -> None:
        """Stop the event loop and join the thread."""
        if self._loop and self._loop.is_running():
            self._loop.call_soon_threadsafe(self._loop.stop)
        if self._thread:
            self._thread.join(timeout=5.0)
        self._loop = None
        self._thread = None

    def _exception_handler(self, loop, context):
        msg = context.get("message", "Unhandled exception in BLE thread")
        exc = context.get("exception")
        if exc:
            logger.error("%s", msg, exc_info=exc)
        else:
            logger.error("%s", msg)
