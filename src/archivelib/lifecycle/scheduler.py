"""Periodic checkpoint scheduler.

Runs ``Checkpointer.checkpoint`` every ``interval_seconds`` from process
start until stopped. The first tick fires one full interval after
``start()``. The sleep function is injectable so tests can drive the
loop in virtual time.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from archivelib.constants import CHECKPOINT_INTERVAL_SECONDS
from archivelib.lifecycle.checkpoint import Checkpointer

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


class CheckpointScheduler:
    def __init__(
        self,
        checkpointer: Checkpointer,
        interval_seconds: float = CHECKPOINT_INTERVAL_SECONDS,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._checkpointer = checkpointer
        self._interval = interval_seconds
        self._sleep = sleep
        self._task: asyncio.Task | None = None
        self.ticks = 0

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the loop on the running event loop."""
        if self.is_running:
            logger.warning("Checkpoint scheduler already running")
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="checkpoint-scheduler"
        )
        logger.info("Checkpoint scheduler started (every %.1fs)", self._interval)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Checkpoint scheduler stopped after %d ticks", self.ticks)

    async def _run(self) -> None:
        while True:
            await self._sleep(self._interval)
            self.ticks += 1
            try:
                await self._checkpointer.checkpoint()
            except Exception:
                logger.exception("Checkpoint tick %d raised", self.ticks)
