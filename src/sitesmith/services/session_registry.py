"""Session Registry
===================

Keeps one TurnController per session id and runs every controller operation
on the shared background event loop.
"""
from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from sitesmith.services.service_base import NotFoundError
from sitesmith.services.turn_controller import TurnController
from sitesmith.utils.async_utils import BackgroundLoop

logger = logging.getLogger(__name__)

T = TypeVar('T')

ControllerFactory = Callable[[str], TurnController]


class SessionRegistry:
    """Session id -> controller map plus the loop they run on."""

    def __init__(self, factory: ControllerFactory, loop: Optional[BackgroundLoop] = None, timeout: Optional[float] = None):
        self._factory = factory
        self._controllers: Dict[str, TurnController] = {}
        self._lock = threading.Lock()
        self.loop = loop or BackgroundLoop(name="sitesmith-sessions")
        self.timeout = timeout

    def create(self) -> str:
        session_id = uuid.uuid4().hex
        controller = self._factory(session_id)
        controller.store.save(session_id, controller.state)
        with self._lock:
            self._controllers[session_id] = controller
        logger.info(f"Created session {session_id}")
        return session_id

    def get(self, session_id: str) -> TurnController:
        """Return the controller, reviving it from the store when needed."""
        with self._lock:
            controller = self._controllers.get(session_id)
            if controller is not None:
                return controller
            controller = self._factory(session_id)
            if controller.store.load(session_id) is None:
                raise NotFoundError(f"Session {session_id} not found")
            self._controllers[session_id] = controller
            return controller

    def run(self, session_id: str, operation: Callable[[TurnController], Awaitable[T]]) -> T:
        """Run ``operation(controller)`` on the background loop and wait for it."""
        controller = self.get(session_id)
        return self.loop.run(operation(controller), timeout=self.timeout)

    def call(self, session_id: str, operation: Callable[[TurnController], T]) -> T:
        """Run a synchronous controller operation on the loop thread."""
        controller = self.get(session_id)

        async def _invoke() -> T:
            return operation(controller)

        return self.loop.run(_invoke(), timeout=self.timeout)

    def drain(self, session_id: str) -> None:
        """Block until the session's background work has finished."""
        self.run(session_id, lambda c: c.wait_for_background())

    def shutdown(self) -> None:
        self.loop.stop()


__all__ = ['SessionRegistry']
