"""Deferred-task scheduling for artifact housekeeping.

One scheduler is built per process and owned by the artifact store.
Callbacks are coroutines; their failures are logged and never reach
whoever scheduled them.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[None]]


class ScheduledTask(ABC):
    """Handle to a pending callback."""

    name: str

    @abstractmethod
    def cancel(self) -> None: ...

    @property
    @abstractmethod
    def done(self) -> bool: ...


class TaskScheduler(ABC):
    """Runs callbacks after a delay, independently of the caller."""

    @abstractmethod
    def schedule(self, delay: float, callback: Callback, *, name: str) -> ScheduledTask:
        """Run *callback* once, *delay* seconds from now."""
        ...

    @property
    @abstractmethod
    def pending(self) -> int:
        """Number of callbacks not yet run or cancelled."""
        ...

    @abstractmethod
    async def shutdown(self) -> None:
        """Cancel everything still pending."""
        ...


async def run_callback(callback: Callback, name: str) -> None:
    try:
        await callback()
    except Exception:
        logger.exception("Scheduled task %s failed", name)


class _AsyncioTask(ScheduledTask):
    def __init__(self, task: asyncio.Task[None], name: str) -> None:
        self._task = task
        self.name = name

    def cancel(self) -> None:
        self._task.cancel()

    @property
    def done(self) -> bool:
        return self._task.done()


class AsyncioScheduler(TaskScheduler):
    """Scheduler backed by tasks on the running event loop."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    def schedule(self, delay: float, callback: Callback, *, name: str) -> ScheduledTask:
        task = asyncio.get_running_loop().create_task(
            self._run_later(max(delay, 0.0), callback, name), name=name
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return _AsyncioTask(task, name)

    @property
    def pending(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    async def shutdown(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    @staticmethod
    async def _run_later(delay: float, callback: Callback, name: str) -> None:
        await asyncio.sleep(delay)
        await run_callback(callback, name)
