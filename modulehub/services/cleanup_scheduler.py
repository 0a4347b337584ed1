import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class CleanupScheduler:
    """
    Runs a job once at start, then every `interval` seconds, until stopped.

    `sleep` is injectable so tests drive the loop without real waiting.
    A failing job is logged and the schedule carries on.
    """

    def __init__(
        self,
        job: Callable[[], Awaitable[object]],
        interval: float,
        run_on_start: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.job = job
        self.interval = interval
        self.run_on_start = run_on_start
        self.sleep = sleep
        self.runs = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="temp-file-cleanup")
        logger.info(f"Temporary file cleanup scheduled every {self.interval:.0f}s")

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Temporary file cleanup stopped")

    async def run_once(self):
        self.runs += 1
        try:
            await self.job()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Scheduled temporary file cleanup failed")

    async def _loop(self):
        if self.run_on_start:
            await self.run_once()
        while True:
            await self.sleep(self.interval)
            await self.run_once()
