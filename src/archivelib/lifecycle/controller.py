"""Lifecycle controller: open, create and roll back the store.

Classifies every failure the storage engine reports into one of three
outcomes:

* **transparent** -- ``AlreadyOpen``: release stale handles, treat as open.
* **recoverable** -- ``NotFound`` on open, ``DataIsCorrupted``: publish a
  condition with a single remediation command.
* **fatal** -- everything else: publish a condition whose only command
  terminates the process.

No engine call is ever retried automatically; each recovery step waits
for the user to invoke the command of the current condition.
"""

from __future__ import annotations

import logging
from pathlib import Path

from archivelib.engine.exceptions import EngineError
from archivelib.engine.protocol import StorageEngine
from archivelib.lifecycle import conditions
from archivelib.lifecycle.context import LifecycleContext
from archivelib.models import BlockingCondition, EngineTag, LifecycleState
from archivelib.telemetry import Telemetry, get_telemetry

logger = logging.getLogger(__name__)


class LifecycleController:
    """Drives the store from ``unresolved`` to ``open`` or ``blocked``.

    Args:
        context: Process-wide lifecycle context (path, FSM, channel).
        engine: Storage engine reached through the fixed RPC vocabulary.
        telemetry: OTel facade; defaults to the process-wide instance.
    """

    def __init__(
        self,
        context: LifecycleContext,
        engine: StorageEngine,
        telemetry: Telemetry | None = None,
    ) -> None:
        self._context = context
        self._engine = engine
        self._telemetry = telemetry if telemetry is not None else get_telemetry()

    @property
    def state(self) -> LifecycleState:
        return self._context.state

    @property
    def condition(self) -> BlockingCondition | None:
        return self._context.condition

    # ------------------------------------------------------------------
    # Open
    # ------------------------------------------------------------------

    async def initialize(self, path: Path) -> None:
        """Resolve the storage path and try to open the store there."""
        self._context.resolve(path)
        self._context.fsm.send("begin_open")
        store_path = self._context.storage_path

        with self._telemetry.span("lifecycle.open", store_path) as span:
            version = self._context.channel.version
            try:
                await self._engine.open(store_path)
            except EngineError as exc:
                span.engine_failed(exc)
                logger.info("Open of %s failed: %s", store_path, exc.tag)
                await self._on_open_failed(exc, version)
                return
            span.engine_ok()
            if self._context.commit(version, None, "open_succeeded"):
                logger.info("Store open at %s", store_path)

    async def _on_open_failed(self, exc: EngineError, version: int) -> None:
        if exc.is_tag(EngineTag.NOT_FOUND):
            self._context.commit(version, conditions.no_database(), "store_missing")
        elif exc.is_tag(EngineTag.COLLISION):
            self._context.commit(version, conditions.lock_held(), "block")
        elif exc.is_tag(EngineTag.DATA_IS_CORRUPTED):
            if not self._context.is_stale(version, "corruption_detected"):
                await self.begin_rollback_discovery()
        elif exc.is_tag(EngineTag.ALREADY_OPEN):
            if not self._context.is_stale(version, "release_stale_handles"):
                await self._recover_already_open(version)
        else:
            self._context.commit(version, conditions.unclassified(exc.tag), "block")

    async def _recover_already_open(self, version: int) -> None:
        """This process still holds handles: drop them and carry on as open."""
        try:
            await self._engine.release_stale_handles()
        except EngineError as exc:
            logger.error("Releasing stale handles failed: %s", exc.tag)
            self._context.commit(version, conditions.unclassified(exc.tag), "block")
            return
        if self._context.commit(version, None, "open_succeeded"):
            logger.info("Store was already open in this process; stale handles released")

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_store(self) -> None:
        """Create a new store at the resolved path (``CreateStore`` command)."""
        store_path = self._context.storage_path
        self._context.fsm.send("begin_create")

        with self._telemetry.span("lifecycle.create", store_path) as span:
            version = self._context.channel.version
            try:
                await self._engine.create(store_path)
            except EngineError as exc:
                span.engine_failed(exc)
                logger.warning("Create of %s failed: %s", store_path, exc.tag)
                if exc.is_tag(EngineTag.ALREADY_EXISTS):
                    condition = conditions.already_exists(store_path)
                elif exc.is_tag(EngineTag.COLLISION):
                    condition = conditions.lock_held()
                else:
                    condition = conditions.unclassified(exc.tag)
                self._context.commit(version, condition, "block")
                return
            span.engine_ok()
            if self._context.commit(version, None, "open_succeeded"):
                logger.info("Created store at %s", store_path)

    # ------------------------------------------------------------------
    # Rollback
    # ------------------------------------------------------------------

    async def begin_rollback_discovery(self) -> None:
        """Look for the newest valid backup and offer rolling back to it."""
        store_path = self._context.storage_path
        if self._context.state is LifecycleState.OPENING:
            self._context.fsm.send("corruption_detected")
        self._context.channel.set(conditions.searching_backup())

        with self._telemetry.span("lifecycle.rollback_discovery", store_path) as span:
            version = self._context.channel.version
            try:
                info = await self._engine.query_integrity(store_path)
            except EngineError as exc:
                span.engine_failed(exc)
                logger.error("No rollback candidate for %s: %s", store_path, exc.tag)
                if exc.is_tag(EngineTag.NOT_FOUND):
                    condition = conditions.no_backup_after_corruption()
                else:
                    condition = conditions.unclassified(exc.tag)
                self._context.commit(version, condition, "block")
                return
            span.engine_ok()
            span.set_attribute("rollback.corrupted_instant", info.corrupted_instant)
            span.set_attribute("rollback.candidate_instant", info.rollback_candidate_instant)
            self._context.commit(version, conditions.rollback_offer(info))

    async def commit_rollback(self) -> None:
        """Replace the corrupted store with the offered backup (``CommitRollback``)."""
        store_path = self._context.storage_path
        self._context.fsm.send("begin_rollback")

        with self._telemetry.span("lifecycle.rollback_commit", store_path) as span:
            version = self._context.channel.version
            try:
                await self._engine.commit_rollback(store_path)
            except EngineError as exc:
                span.engine_failed(exc)
                logger.error("Rollback of %s failed: %s", store_path, exc.tag)
                if exc.is_tag(EngineTag.NOT_FOUND):
                    condition = conditions.no_backup_recoverable()
                elif exc.is_tag(EngineTag.COLLISION):
                    condition = conditions.lock_held()
                else:
                    condition = conditions.unclassified(exc.tag)
                self._context.commit(version, condition, "block")
                return
            span.engine_ok()
            if self._context.commit(version, None, "rolled_back"):
                logger.warning("Store at %s rolled back to backup", store_path)
