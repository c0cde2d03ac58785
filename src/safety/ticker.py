"""
Countdown tick source.

The only recurring timer in the service: an asyncio task that calls the
session's tick handler once per interval until the handler returns False or
the ticker is stopped.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

TickHandler = Callable[[], Awaitable[bool]]


class CountdownTicker:
    """
    Drives a tick handler from the event loop.

    start() while running cancels the previous task first, so two tick
    sources never run concurrently.
    """

    def __init__(self, interval_s: float = 1.0, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self._interval_s = interval_s
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, on_tick: TickHandler) -> None:
        if self.running:
            logger.debug("Ticker already running, cancelling previous tick source")
            self._task.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run(on_tick))

    async def _run(self, on_tick: TickHandler) -> None:
        while True:
            await self._sleep(self._interval_s)
            self.ticks += 1
            if not await on_tick():
                break

    async def stop(self) -> None:
        """Cancel the tick task and wait for it to finish. Safe to call multiple times."""
        task, self._task = self._task, None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
