"""Store lifecycle: open/create/rollback, checkpoints, shutdown and commands."""

from archivelib.lifecycle.channel import StatusChannel
from archivelib.lifecycle.checkpoint import Checkpointer
from archivelib.lifecycle.context import LifecycleContext
from archivelib.lifecycle.controller import LifecycleController
from archivelib.lifecycle.dispatcher import CommandDispatcher
from archivelib.lifecycle.runtime import LifecycleRuntime
from archivelib.lifecycle.scheduler import CheckpointScheduler
from archivelib.lifecycle.shutdown import ShutdownCoordinator

__all__ = [
    "CheckpointScheduler",
    "Checkpointer",
    "CommandDispatcher",
    "LifecycleContext",
    "LifecycleController",
    "LifecycleRuntime",
    "ShutdownCoordinator",
    "StatusChannel",
]
