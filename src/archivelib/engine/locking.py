"""Exclusive single-instance lock for the store directory.

Two processes opening the same store would both checkpoint into it and
corrupt it, so the engine holds an advisory OS lock on ``archive.lock``
for as long as the store is open.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from archivelib.constants import LOCK_FILENAME
from archivelib.engine.exceptions import LockHeldError

logger = logging.getLogger(__name__)


@dataclass
class StoreLock:
    """A held lock; call :meth:`release` exactly once."""

    path: Path
    _handle: Any

    def release(self) -> None:
        try:
            _unlock_file(self._handle)
        finally:
            self._handle.close()
        logger.debug("Released store lock %s", self.path)


def _lock_file(handle) -> None:
    if os.name == "nt":
        import msvcrt

        try:
            msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, 1)  # type: ignore[attr-defined]
        except OSError as exc:
            raise LockHeldError(str(handle.name)) from exc
        return
    import fcntl

    try:
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError as exc:
        raise LockHeldError(str(handle.name)) from exc


def _unlock_file(handle) -> None:
    if os.name == "nt":
        import msvcrt

        try:
            msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)  # type: ignore[attr-defined]
        except OSError:
            logger.debug("Lock on %s was already released", handle.name)
        return
    import fcntl

    fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


def acquire_store_lock(store_dir: Path) -> StoreLock:
    """Take the exclusive lock for *store_dir*.

    The directory must already exist.

    Raises:
        LockHeldError: Another process (or another engine in this
            process) holds the lock.
    """
    lock_path = store_dir / LOCK_FILENAME
    handle = lock_path.open("a+", encoding="utf-8")
    try:
        _lock_file(handle)
    except LockHeldError:
        handle.close()
        raise
    # Owner metadata is informational; the lock itself is what matters.
    handle.seek(0)
    handle.truncate()
    handle.write(f"pid={os.getpid()}\n")
    handle.flush()
    logger.debug("Acquired store lock %s", lock_path)
    return StoreLock(path=lock_path, _handle=handle)


def is_store_locked(store_dir: Path) -> bool:
    """Return True if some process currently holds the lock for *store_dir*."""
    if not (store_dir / LOCK_FILENAME).exists():
        return False
    try:
        lock = acquire_store_lock(store_dir)
    except LockHeldError:
        return True
    lock.release()
    return False
