"""Shutdown coordinator: one last save, then always exit."""

from __future__ import annotations

import logging
from typing import Callable

from archivelib.lifecycle.checkpoint import Checkpointer

logger = logging.getLogger(__name__)


class ShutdownCoordinator:
    """Runs a final checkpoint and then the terminate callback.

    Termination happens whether the save succeeded, failed or was
    skipped because a condition is shown.
    """

    def __init__(self, checkpointer: Checkpointer, terminate: Callable[[], None]) -> None:
        self._checkpointer = checkpointer
        self._terminate = terminate
        self.in_progress = False

    async def save_and_terminate(self) -> None:
        if self.in_progress:
            logger.debug("Shutdown already in progress")
            return
        self.in_progress = True
        logger.info("Shutdown requested; saving before exit")
        try:
            saved = await self._checkpointer.checkpoint()
            logger.info("Final checkpoint %s", "saved" if saved else "not saved")
        finally:
            self._terminate()
