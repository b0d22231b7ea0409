"""
A fixed-capacity pool of asyncio tasks whose submission blocks while full.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

log = logging.getLogger(__name__)


class WorkerPool:
    """
    Bounded worker pool built on a counting semaphore.

    ``submit`` waits for a free slot before spawning, so a producer feeding the
    pool is throttled to the rate at which workers finish. Leaving the
    ``async with`` block joins every submitted task.

    Usage:
        async with WorkerPool(16) as pool:
            async for item in source:
                await pool.submit(handle, item)
    """

    def __init__(self, capacity: int, logger: logging.Logger | None = None):
        if capacity < 1:
            raise ValueError("Pool capacity must be at least 1.")
        self.capacity = capacity
        self.log = logger or log
        self._semaphore = asyncio.Semaphore(capacity)
        self._tasks: set[asyncio.Task] = set()
        self.in_flight = 0
        self.peak_in_flight = 0

    async def submit(
        self, func: Callable[..., Awaitable[Any]], *args: Any
    ) -> asyncio.Task:
        """Waits for a slot, then runs ``func(*args)`` in a new task."""
        await self._semaphore.acquire()
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        task = asyncio.create_task(self._run(func, *args))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, func: Callable[..., Awaitable[Any]], *args: Any) -> None:
        try:
            await func(*args)
        except Exception as e:
            self.log.error(
                f"[red]✗ Worker failed: {e}[/red]",
                exc_info=self.log.getEffectiveLevel() == logging.DEBUG,
            )
        finally:
            self.in_flight -= 1
            self._semaphore.release()

    async def join(self) -> None:
        """Waits until every submitted task has finished."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def cancel(self) -> None:
        for task in self._tasks:
            task.cancel()
        await self.join()

    async def __aenter__(self) -> "WorkerPool":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None and issubclass(exc_type, asyncio.CancelledError):
            await self.cancel()
        else:
            await self.join()
