"""Delayed, cancellable actions keyed by channel id."""

import asyncio
import logging
from collections.abc import Awaitable
from typing import Callable

logger = logging.getLogger(__name__)


class DeletionScheduler:
    """Runs an action after a delay, at most one pending action per key.

    Tasks are owned by the scheduler, not by whoever scheduled them, so a
    scheduled deletion still runs after the calling command or event handler
    has returned. The action itself must re-check whatever state it depends
    on: scheduling time says nothing about execution time.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task] = {}

    def schedule(
        self,
        key: str,
        delay: float,
        action: Callable[[], Awaitable[None]],
    ) -> asyncio.Task:
        """Run `action` after `delay` seconds, replacing any pending one for `key`."""
        previous = self._tasks.get(key)
        if previous is not None and previous is not asyncio.current_task():
            previous.cancel()

        task = asyncio.create_task(self._run(key, delay, action), name=f"delete-{key}")
        self._tasks[key] = task
        task.add_done_callback(lambda t: self._forget(key, t))
        logger.debug(f"Scheduled action for {key} in {delay}s")
        return task

    async def _run(self, key: str, delay: float, action: Callable[[], Awaitable[None]]) -> None:
        await asyncio.sleep(delay)
        try:
            await action()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Scheduled action for {key} failed: {e}", exc_info=True)

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]

    def cancel(self, key: str) -> bool:
        """Cancel the pending action for `key`.

        Returns:
            True if an action was pending
        """
        task = self._tasks.pop(key, None)
        if task is None or task.done():
            return False
        if task is asyncio.current_task():
            return False
        task.cancel()
        logger.debug(f"Cancelled pending action for {key}")
        return True

    def pending(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    def __len__(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    async def wait_idle(self) -> None:
        """Wait until every pending action, including rescheduled ones, finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def cancel_all(self) -> None:
        """Cancel every pending action and wait for the cancellations."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
