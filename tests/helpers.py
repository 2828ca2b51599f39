"""Test doubles: a scriptable fake storage engine and a manual clock."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

from archivelib.models import RollbackInfo

CORRUPTED_AT = "2024-03-01T10:00:00Z"
BACKUP_AT = "2024-03-01T09:30:00Z"


class FakeEngine:
    """StorageEngine double: every RPC is an AsyncMock that succeeds by default.

    Record access is a plain dict (``stored_records``) with hooks tracked in
    ``hooks``, so it also satisfies ``RecordEditor``.

    Set ``side_effect`` on an RPC to an ``EngineError`` (or a list of
    outcomes) to script failures.
    """

    def __init__(self) -> None:
        self.open = AsyncMock(return_value=None)
        self.create = AsyncMock(return_value=None)
        self.release_stale_handles = AsyncMock(return_value=None)
        self.store = AsyncMock(return_value=None)
        self.query_integrity = AsyncMock(
            return_value=RollbackInfo(
                corrupted_instant=CORRUPTED_AT,
                rollback_candidate_instant=BACKUP_AT,
            )
        )
        self.commit_rollback = AsyncMock(return_value=None)
        self.stored_records: dict[str, dict] = {}
        self.hooks: dict[int, str] = {}
        self._next_hook = 1

    def records(self) -> dict[str, dict]:
        return dict(self.stored_records)

    def get_record(self, key: str) -> dict | None:
        return self.stored_records.get(key)

    def put_record(self, key: str, body: dict) -> None:
        self.stored_records[key] = body

    def delete_record(self, key: str) -> bool:
        return self.stored_records.pop(key, None) is not None

    def acquire_hook(self, key: str) -> int:
        hook_id = self._next_hook
        self._next_hook += 1
        self.hooks[hook_id] = key
        return hook_id

    def release_hook(self, hook_id: int) -> None:
        self.hooks.pop(hook_id, None)


class ManualClock:
    """Replacement for ``asyncio.sleep`` that only wakes on :meth:`advance`."""

    def __init__(self) -> None:
        self.now = 0.0
        self._waiters: list[tuple[float, asyncio.Future]] = []

    async def sleep(self, seconds: float) -> None:
        future = asyncio.get_running_loop().create_future()
        self._waiters.append((self.now + seconds, future))
        await future

    @property
    def pending(self) -> int:
        return sum(1 for _, f in self._waiters if not f.done())

    async def advance(self, seconds: float) -> None:
        """Move time forward, waking sleepers in deadline order."""
        target = self.now + seconds
        while True:
            due = sorted(
                (w for w in self._waiters if w[0] <= target),
                key=lambda w: w[0],
            )
            if not due:
                break
            waiter = due[0]
            self._waiters.remove(waiter)
            deadline, future = waiter
            self.now = deadline
            if not future.done():
                future.set_result(None)
            await settle()
        self.now = target


async def settle(rounds: int = 20) -> None:
    """Let every ready task run until it blocks again."""
    for _ in range(rounds):
        await asyncio.sleep(0)
