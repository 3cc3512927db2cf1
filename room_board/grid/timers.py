# Periodic timers driven by the asyncio event loop
import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)


class PeriodicTimer:
    """
    Calls a function every interval_seconds on the running event loop until cancelled.

    The callback may be a plain function or return an awaitable. Exceptions from a tick are logged
    and the timer keeps its schedule, a failed tick simply waits for the next one.
    Starting an already running timer restarts it, so at most one task is ever armed per timer.
    """

    def __init__(self, interval_seconds: float, callback: Callable[[], Union[None, Awaitable[None]]], name: str = "timer"):
        self.interval_seconds = interval_seconds
        self.callback = callback
        self.name = name
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        # Must be called from within the running loop
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        logger.info("Armed %s every %ss", self.name, self.interval_seconds)

    def cancel(self):
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.info("Cancelled %s", self.name)
        self._task = None

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                result = self.callback()
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Tick of %s failed", self.name)
