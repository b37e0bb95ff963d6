from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict

logger = logging.getLogger(__name__)


class BackgroundRefresher:
    """
    Runs recomputations as in-process asyncio tasks.

    At most one task per key is in flight; ``submit`` returns ``False`` when
    the key already has a running task. Task failures are logged and dropped
    so they never reach the request that scheduled them.
    """

    def __init__(self) -> None:
        self._in_flight: Dict[str, asyncio.Task] = {}

    def is_in_flight(self, key: str) -> bool:
        task = self._in_flight.get(key)
        return task is not None and not task.done()

    def submit(self, key: str, job: Callable[[], Awaitable[Any]]) -> bool:
        if self.is_in_flight(key):
            logger.debug("Refresh for %s already in flight", key)
            return False

        task = asyncio.create_task(self._run(key, job), name=f"refresh:{key}")
        self._in_flight[key] = task
        task.add_done_callback(lambda t, key=key: self._release(key, t))
        return True

    def _release(self, key: str, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    async def _run(self, key: str, job: Callable[[], Awaitable[Any]]) -> None:
        try:
            await job()
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.error("Background refresh for %s failed: %s", key, exc, exc_info=True)

    @property
    def pending(self) -> int:
        return sum(1 for task in self._in_flight.values() if not task.done())

    async def drain(self) -> None:
        """Wait for every submitted task to finish."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight.values()), return_exceptions=True)

    async def shutdown(self) -> None:
        for task in list(self._in_flight.values()):
            task.cancel()
        if self._in_flight:
            await asyncio.gather(*self._in_flight.values(), return_exceptions=True)
        self._in_flight.clear()
