"""Checkpoint: flush in-memory records to durable storage.

A checkpoint is a no-op while a blocking condition is shown or the store
is not open. Otherwise the engine's ``store`` is attempted twice; only
when both attempts fail is the failure surfaced to the user, and then as
a fatal condition carrying the second attempt's tag.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from archivelib.engine.exceptions import EngineError
from archivelib.engine.protocol import StorageEngine
from archivelib.lifecycle import conditions
from archivelib.lifecycle.context import LifecycleContext
from archivelib.models import LifecycleState
from archivelib.telemetry import Telemetry, get_telemetry

logger = logging.getLogger(__name__)


class Checkpointer:
    """Single-flight save with one silent retry."""

    def __init__(
        self,
        context: LifecycleContext,
        engine: StorageEngine,
        telemetry: Telemetry | None = None,
    ) -> None:
        self._context = context
        self._engine = engine
        self._telemetry = telemetry if telemetry is not None else get_telemetry()
        self._lock = asyncio.Lock()
        self.last_saved_at: datetime | None = None

    def should_save(self) -> bool:
        """Saves only run with no condition shown and the store open."""
        return (
            self._context.condition is None
            and self._context.state is LifecycleState.OPEN
        )

    async def try_save(self) -> str | None:
        """One ``store`` attempt. Returns the failure tag, or None on success."""
        failure = await self._attempt()
        return failure.tag if failure is not None else None

    async def _attempt(self) -> EngineError | None:
        try:
            await self._engine.store()
        except EngineError as exc:
            return exc
        self.last_saved_at = datetime.now(timezone.utc)
        return None

    async def checkpoint(self) -> bool:
        """Save if allowed. Returns True if an attempt succeeded.

        Concurrent callers queue on a lock so at most one save is ever in
        flight; each re-checks the gate once it gets its turn.
        """
        async with self._lock:
            if not self.should_save():
                logger.debug(
                    "Checkpoint skipped (state=%s, condition=%s)",
                    self._context.state.value,
                    self._context.condition is not None,
                )
                return False

            with self._telemetry.span("lifecycle.checkpoint") as span:
                version = self._context.channel.version
                first = await self._attempt()
                if first is None:
                    span.set_attribute("checkpoint.attempts", 1)
                    span.engine_ok()
                    return True

                logger.warning("Save failed (%s); retrying once", first.tag)
                second = await self._attempt()
                span.set_attribute("checkpoint.attempts", 2)
                if second is None:
                    span.set_attribute("checkpoint.first_failure", first.tag)
                    span.engine_ok()
                    return True

                span.engine_failed(second)
                logger.error("Save failed twice (first=%s, second=%s)", first.tag, second.tag)
                self._context.commit(version, conditions.save_failed(second.tag), "block")
                return False
