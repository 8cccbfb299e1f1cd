from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

LOGGER = logging.getLogger(__name__)

PAUSE_SECONDS = 1.8


class TriggerScheduler:
    """Debounce timer on the running event loop.

    Every `poke()` cancels the pending timer and arms a new one, so the callback
    runs once, `delay` seconds after the last poke. At most one timer is pending.
    """

    def __init__(self, delay: float, callback: Callable[[], Awaitable[None]]) -> None:
        self.delay = delay
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self.fired = 0

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def poke(self) -> None:
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self.fired += 1
        task = asyncio.ensure_future(self._callback())
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error("Scheduled analysis failed", exc_info=exc)

    async def drain(self) -> None:
        """Wait for callbacks that have already fired."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
