"""Process-scoped lifecycle context.

Constructed once at startup and passed by reference to the controller,
checkpointer, dispatcher and UI. Holds the storage path, the lifecycle
FSM and the status channel; it is never torn down before process exit.
"""

from __future__ import annotations

import logging
from pathlib import Path

from archivelib.lifecycle.channel import StatusChannel
from archivelib.lifecycle.fsm import LifecycleSM
from archivelib.models import BlockingCondition, LifecycleState

logger = logging.getLogger(__name__)


class LifecycleContext:
    """Storage path + lifecycle state + blocking-condition channel."""

    def __init__(
        self,
        fsm: LifecycleSM | None = None,
        channel: StatusChannel | None = None,
    ) -> None:
        self.fsm = fsm if fsm is not None else LifecycleSM()
        self.channel = channel if channel is not None else StatusChannel()
        self._storage_path: Path | None = None

    @property
    def storage_path(self) -> Path:
        """Absolute store directory; raises until :meth:`resolve` ran."""
        if self._storage_path is None:
            raise RuntimeError("Storage path has not been resolved yet")
        return self._storage_path

    @property
    def is_resolved(self) -> bool:
        return self._storage_path is not None

    def resolve(self, path: Path) -> None:
        """Fix the storage path for the rest of the process lifetime."""
        if self._storage_path is not None:
            raise RuntimeError(
                f"Storage path already resolved to {self._storage_path}"
            )
        self._storage_path = Path(path).absolute()
        logger.info("Storage path resolved to %s", self._storage_path)

    @property
    def state(self) -> LifecycleState:
        return LifecycleState(self.fsm.current_state_value)

    @property
    def condition(self) -> BlockingCondition | None:
        return self.channel.current

    def is_stale(self, version: int, event: str | None = None) -> bool:
        """True (and logged) when the channel moved on since *version*."""
        if self.channel.version == version:
            return False
        logger.warning(
            "Discarding stale outcome%s: channel moved from version %d to %d",
            f" for {event}" if event else "",
            version,
            self.channel.version,
        )
        return True

    def commit(
        self,
        version: int,
        condition: BlockingCondition | None,
        event: str | None = None,
    ) -> bool:
        """Apply the outcome of an engine call started at channel *version*.

        Fires *event* on the FSM (if given) and publishes *condition*
        (``None`` clears). If the channel moved on while the engine call was
        in flight, the outcome is stale: nothing changes and False is
        returned.
        """
        if self.is_stale(version, event):
            return False
        if event is not None:
            self.fsm.send(event)
        if condition is None:
            self.channel.clear()
        else:
            self.channel.set(condition)
        return True
