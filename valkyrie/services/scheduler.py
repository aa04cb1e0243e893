"""Delayed background work owned by the running bot.

Used for "verify the server came up" checks and status-message cleanup.
Timers are independent: scheduling the same work twice runs it twice.
A timer's failure is logged and never reaches whoever scheduled it.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class Scheduler:
    """Tracks fire-and-forget timers so they can be cancelled at shutdown."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    def call_later(
        self,
        delay: float,
        callback: Callable[[], Awaitable[Any]],
        name: str = "timer",
    ) -> asyncio.Task[None]:
        """Run *callback* after *delay* seconds.

        Args:
            delay: Seconds to wait before running
            callback: Zero-argument coroutine function
            name: Label used in log lines

        Returns:
            The timer task; cancelling it drops the pending work
        """
        task = asyncio.create_task(self._run(delay, callback, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.debug("Scheduled %s in %.1fs (pending=%d)", name, delay, len(self._tasks))
        return task

    async def _run(
        self,
        delay: float,
        callback: Callable[[], Awaitable[Any]],
        name: str,
    ) -> None:
        await asyncio.sleep(delay)
        try:
            await callback()
        except Exception:
            logger.exception("Scheduled %s failed", name)

    @property
    def pending(self) -> int:
        """Number of timers not yet finished."""
        return len(self._tasks)

    async def shutdown(self) -> None:
        """Cancel every pending timer and wait for them to stop."""
        tasks = list(self._tasks)
        if not tasks:
            return
        logger.info("Cancelling %d pending timer(s)", len(tasks))
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
