"""
Single-flight deferred calls on the running asyncio loop
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class DeferredCall:
    """One outstanding invocation of ``callback`` at a time

    ``arm`` schedules only when nothing is pending; ``rearm`` restarts the
    delay (debounce). The handle is cleared before the callback runs so the
    callback may arm the next cycle itself. Coroutine results are wrapped in
    a task kept on ``self.task``.
    """

    def __init__(self, callback: Callable[[], Any], delay: float = 0.0):
        self.callback = callback
        self.delay = delay
        self._handle: Optional[asyncio.Handle] = None
        self.task: Optional[asyncio.Task] = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self) -> bool:
        if self._handle is not None:
            return False
        loop = asyncio.get_running_loop()
        if self.delay > 0:
            self._handle = loop.call_later(self.delay, self._fire)
        else:
            self._handle = loop.call_soon(self._fire)
        return True

    def rearm(self) -> None:
        self.cancel()
        self.arm()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        result = self.callback()
        if inspect.isawaitable(result):
            self.task = asyncio.ensure_future(result)
