"""Archive store lifecycle: single-instance open, corruption rollback, checkpoints."""

__version__ = "0.1.0"

from archivelib.models import (
    BlockingCondition,
    Command,
    EngineTag,
    LifecycleConfig,
    LifecycleState,
    RollbackInfo,
)

__all__ = [
    "BlockingCondition",
    "Command",
    "EngineTag",
    "LifecycleConfig",
    "LifecycleState",
    "RollbackInfo",
    "__version__",
]
