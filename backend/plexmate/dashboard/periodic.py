"""Cancellable periodic task owned by one dashboard."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from discord.ext import tasks

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Run *callback* every *interval* seconds until cancelled.

    Built on ``discord.ext.tasks.Loop``. The first run happens one interval
    after ``start()``. ``cancel()`` only prevents future runs: a callback
    that is already executing is allowed to finish. Cancelling more than
    once is a no-op, and a callback may cancel its own task.
    """

    def __init__(
        self,
        interval: float,
        callback: Callable[[], Awaitable[None]],
        *,
        name: str = "periodic",
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.name = name
        self._callback = callback
        self._cancelled = False
        self._in_flight = False

        self._loop = tasks.loop(seconds=interval, reconnect=False, name=name)(self._iterate)
        self._loop.before_loop(self._first_delay)

    @property
    def is_running(self) -> bool:
        return self._loop.is_running() and not self._cancelled

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def start(self) -> None:
        if self._loop.get_task() is not None:
            raise RuntimeError(f"{self.name} already started")
        if not self._cancelled:
            self._loop.start()

    def cancel(self) -> None:
        self._cancelled = True
        if self._in_flight:
            # Loop.stop() exits after the running iteration
            self._loop.stop()
        else:
            self._loop.cancel()

    async def wait(self) -> None:
        """Wait for the loop to exit, including any in-flight callback."""
        task = self._loop.get_task()
        if task is not None:
            await asyncio.wait({task})

    async def _first_delay(self) -> None:
        await asyncio.sleep(self.interval)

    async def _iterate(self) -> None:
        if self._cancelled:
            self._loop.stop()
            return
        self._in_flight = True
        try:
            await self._callback()
        except Exception:
            logger.exception(f"{self.name}: tick raised")
        finally:
            self._in_flight = False
