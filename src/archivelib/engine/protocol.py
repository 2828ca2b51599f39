"""StorageEngine protocol -- the fixed RPC vocabulary of the store.

The lifecycle controller talks to the store only through this interface,
so the reference SQLite engine and test doubles are interchangeable.
Every failure is raised as ``EngineError`` carrying a tag.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from archivelib.models import RollbackInfo


@runtime_checkable
class StorageEngine(Protocol):
    """Interface for the component that owns on-disk persistence."""

    async def open(self, path: Path) -> None:
        """Open the existing store at *path*.

        Raises:
            EngineError: ``NotFound``, ``Collision``, ``DataIsCorrupted``,
                ``AlreadyOpen`` or an unclassified tag.
        """
        ...

    async def create(self, path: Path) -> None:
        """Create a new, empty store at *path* and open it.

        Raises:
            EngineError: ``AlreadyExists``, ``Collision`` or unclassified.
        """
        ...

    async def release_stale_handles(self) -> None:
        """Drop every internal handle this process still holds on the store."""
        ...

    async def store(self) -> None:
        """Durably persist the in-memory state (a checkpoint).

        Raises:
            EngineError: any tag.
        """
        ...

    async def query_integrity(self, path: Path) -> RollbackInfo:
        """Report when the store was corrupted and which backup can replace it.

        Raises:
            EngineError: ``NotFound`` when no usable backup exists, or
                unclassified.
        """
        ...

    async def commit_rollback(self, path: Path) -> None:
        """Replace the corrupted store with the newest valid backup and open it.

        Raises:
            EngineError: ``NotFound``, ``Collision`` or unclassified.
        """
        ...


@runtime_checkable
class RecordEditor(Protocol):
    """In-memory record access for engines that back the records pane.

    Edits only touch memory; the next checkpoint makes them durable. An
    editor holds a hook on the store while it is open so a later
    ``release_stale_handles`` can reclaim it if the editor never returns.
    """

    def records(self) -> dict[str, dict]: ...

    def get_record(self, key: str) -> dict | None: ...

    def put_record(self, key: str, body: dict) -> None: ...

    def delete_record(self, key: str) -> bool: ...

    def acquire_hook(self, key: str) -> int: ...

    def release_hook(self, hook_id: int) -> None: ...
