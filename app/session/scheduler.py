from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Protocol

from app.core.logging import get_logger

logger = get_logger(__name__)

AsyncCallback = Callable[[], Awaitable[None]]


class Handle(Protocol):
    def cancel(self) -> object: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: AsyncCallback) -> Handle: ...

    def call_every(self, interval: float, callback: AsyncCallback) -> Handle: ...


class AsyncioScheduler:
    """Runs deferred and recurring callbacks on the running event loop.

    Each firing runs in its own task, so cancelling a handle from inside its
    own callback stops future firings without interrupting the current one.
    """

    def __init__(self) -> None:
        self._inflight: set[asyncio.Task[None]] = set()

    def call_later(self, delay: float, callback: AsyncCallback) -> Handle:
        loop = asyncio.get_running_loop()
        return loop.call_later(max(delay, 0.0), self._spawn, callback)

    def call_every(self, interval: float, callback: AsyncCallback) -> Handle:
        loop = asyncio.get_running_loop()
        return loop.create_task(self._repeat(interval, callback))

    async def _repeat(self, interval: float, callback: AsyncCallback) -> None:
        while True:
            await asyncio.sleep(interval)
            self._spawn(callback)

    def _spawn(self, callback: AsyncCallback) -> None:
        task = asyncio.get_running_loop().create_task(callback())
        self._inflight.add(task)
        task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task[None]) -> None:
        self._inflight.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("scheduled_callback_failed", exc_info=task.exception())

    async def drain(self) -> None:
        """Wait for callbacks that already started."""
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)
