"""Wires context, controller, checkpointer, scheduler, shutdown and dispatcher."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from archivelib.engine.protocol import StorageEngine
from archivelib.lifecycle.checkpoint import Checkpointer
from archivelib.lifecycle.context import LifecycleContext
from archivelib.lifecycle.controller import LifecycleController
from archivelib.lifecycle.dispatcher import CommandDispatcher
from archivelib.lifecycle.scheduler import CheckpointScheduler, SleepFn
from archivelib.lifecycle.shutdown import ShutdownCoordinator
from archivelib.models import LifecycleConfig
from archivelib.telemetry import Telemetry, get_telemetry

logger = logging.getLogger(__name__)


@dataclass
class LifecycleRuntime:
    """Everything the UI needs to drive the store lifecycle."""

    context: LifecycleContext
    engine: StorageEngine
    controller: LifecycleController
    checkpointer: Checkpointer
    scheduler: CheckpointScheduler
    shutdown: ShutdownCoordinator
    dispatcher: CommandDispatcher

    @classmethod
    def build(
        cls,
        engine: StorageEngine,
        terminate: Callable[[], None],
        config: LifecycleConfig | None = None,
        telemetry: Telemetry | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> "LifecycleRuntime":
        config = config or LifecycleConfig()
        telemetry = telemetry or get_telemetry()
        context = LifecycleContext()
        controller = LifecycleController(context, engine, telemetry)
        checkpointer = Checkpointer(context, engine, telemetry)
        scheduler = CheckpointScheduler(
            checkpointer, config.checkpoint_interval_seconds, sleep=sleep
        )
        return cls(
            context=context,
            engine=engine,
            controller=controller,
            checkpointer=checkpointer,
            scheduler=scheduler,
            shutdown=ShutdownCoordinator(checkpointer, terminate),
            dispatcher=CommandDispatcher(context, controller, terminate),
        )

    async def bootstrap(self, path: Path) -> None:
        """Open the store at *path* and start periodic checkpoints."""
        await self.controller.initialize(path)
        self.scheduler.start()
        logger.info("Lifecycle bootstrapped in state %s", self.context.state.value)
