"""
Async Utilities
===============

Bridges Flask's synchronous request handlers to the asyncio code of the
generation layer.

All session work runs on one long-lived event loop in a daemon thread, so
background tasks scheduled during a request (SEO derivation) keep running
after the request has returned.
"""

import asyncio
import logging
import threading
from typing import Any, Coroutine, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class BackgroundLoop:
    """An event loop running forever in its own daemon thread.

    Usage:
        loop = BackgroundLoop(name="sessions")
        result = loop.run(some_coroutine())
        loop.stop()
    """

    def __init__(self, name: str = "sitesmith-loop"):
        self.name = name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.is_running:
                return
            self._ready.clear()
            self._thread = threading.Thread(target=self._run_forever, name=self.name, daemon=True)
            self._thread.start()
        self._ready.wait()
        logger.debug(f"Background loop {self.name} started")

    def _run_forever(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        self._ready.set()
        try:
            loop.run_forever()
        finally:
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.close()

    def run(self, coro: Coroutine[Any, Any, T], timeout: Optional[float] = None) -> T:
        """Run ``coro`` on the background loop and block until it finishes.

        Raises:
            Any exception raised by the coroutine
        """
        if not self.is_running:
            self.start()
        assert self._loop is not None
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result(timeout)

    def stop(self, timeout: float = 5.0) -> None:
        with self._lock:
            if not self.is_running or self._loop is None:
                return
            self._loop.call_soon_threadsafe(self._loop.stop)
            thread = self._thread
        if thread is not None:
            thread.join(timeout)
        logger.debug(f"Background loop {self.name} stopped")


__all__ = ['BackgroundLoop']
