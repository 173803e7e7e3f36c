"""
Periodic background tasks on the asyncio event loop.

Each PeriodicTask is owned by the component that starts it and must be
stopped by that component on teardown.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional
import logging

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Runs an async callback every `interval` seconds until stopped.

    Usage:
        task = PeriodicTask("pending-poll", 30, cache.poll_pending)
        task.start()
        ...
        await task.stop()
    """

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[[], Awaitable[Any]],
        run_immediately: bool = False,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self.interval = interval
        self.callback = callback
        self.run_immediately = run_immediately
        self.run_count = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the loop on the running event loop (no-op if already running)."""
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        logger.debug(f"Started periodic task {self.name} every {self.interval}s")

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug(f"Stopped periodic task {self.name}")

    async def _tick(self) -> None:
        try:
            await self.callback()
        except Exception as e:
            logger.error(f"Periodic task {self.name} failed: {e}")
        finally:
            self.run_count += 1

    async def _run(self) -> None:
        if self.run_immediately:
            await self._tick()
        while True:
            await asyncio.sleep(self.interval)
            await self._tick()
