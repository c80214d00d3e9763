"""Background auto-refresh timer for RSS Feed Reader."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class AutoRefresher:
    """Runs a coroutine callback every `interval` seconds on a cancellable task.

    Re-arming replaces the running task, so at most one timer exists at a
    time. A failing tick is logged and the timer keeps running.
    """

    def __init__(self, callback: Callable[[], Awaitable[None]]):
        self._callback = callback
        self._task: asyncio.Task | None = None
        self.interval: float | None = None

    @property
    def armed(self) -> bool:
        return self._task is not None and not self._task.done()

    def arm(self, interval: float) -> None:
        """(Re)start the timer.

        Outside a running event loop nothing is scheduled; the owner is
        expected to arm again once the loop is up.
        """
        self.disarm()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop, auto-refresh not started")
            return
        self.interval = interval
        self._task = loop.create_task(self._run(interval))

    def disarm(self) -> None:
        """Cancel the timer without waiting for it to finish."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self.interval = None

    async def stop(self) -> None:
        """Cancel the timer and wait until it has exited."""
        task = self._task
        self.disarm()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _run(self, interval: float) -> None:
        logger.info("Auto-refresh started (interval: %ds)", interval)
        while True:
            await asyncio.sleep(interval)
            try:
                await self._callback()
            except Exception as e:
                logger.error("Auto-refresh tick failed: %s", e)
