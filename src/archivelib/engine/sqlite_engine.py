"""Reference storage engine: one SQLite file per store, plus rotated backups.

Layout of a store directory::

    archive.db                  current database
    archive.lock                exclusive single-instance lock
    backups/archive-<stamp>.db  rotated snapshots taken by store()
    corrupted/archive-<stamp>.db  databases set aside by a rollback

Records live in memory while the store is open and are written back
transactionally by :meth:`SqliteEngine.store`. Nothing is written between
checkpoints, so a crash loses at most one checkpoint interval of edits and
never leaves a half-written database.
"""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from archivelib.constants import (
    BACKUP_DIRNAME,
    BACKUP_PREFIX,
    BACKUP_STAMP_FORMAT,
    CORRUPTED_DIRNAME,
    DATABASE_FILENAME,
    DEFAULT_BACKUP_MIN_AGE_SECONDS,
    DEFAULT_MAX_BACKUPS,
    INSTANT_FORMAT,
)
from archivelib.engine.exceptions import EngineError, LockHeldError
from archivelib.engine.locking import StoreLock, acquire_store_lock
from archivelib.models import EngineTag, RollbackInfo

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS records (
    key TEXT PRIMARY KEY,
    body TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS archive_meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""

NOT_OPEN_TAG = "NotOpen"


def format_instant(moment: datetime) -> str:
    """Render *moment* as the engine's ISO-8601 UTC instant string."""
    return moment.astimezone(timezone.utc).strftime(INSTANT_FORMAT)


def backup_instant(backup: Path) -> datetime:
    """Parse the UTC instant encoded in a backup filename."""
    stamp = backup.stem[len(BACKUP_PREFIX):]
    return datetime.strptime(stamp, BACKUP_STAMP_FORMAT).replace(tzinfo=timezone.utc)


def list_backups(store_dir: Path) -> list[Path]:
    """Return the store's backup files, newest first."""
    backup_dir = store_dir / BACKUP_DIRNAME
    if not backup_dir.is_dir():
        return []
    backups = [
        p for p in backup_dir.glob(f"{BACKUP_PREFIX}*.db")
        if _has_valid_stamp(p)
    ]
    return sorted(backups, key=backup_instant, reverse=True)


def _has_valid_stamp(path: Path) -> bool:
    try:
        backup_instant(path)
    except ValueError:
        return False
    return True


def _unclassified(exc: BaseException) -> EngineError:
    return EngineError(f"{type(exc).__name__}: {exc}")


async def check_database_file(db_file: Path) -> bool:
    """Return True if *db_file* is a readable SQLite database that passes
    ``PRAGMA integrity_check`` and carries the records table."""
    uri = db_file.absolute().as_uri() + "?mode=ro"
    try:
        async with aiosqlite.connect(uri, uri=True) as db:
            cursor = await db.execute("PRAGMA integrity_check")
            row = await cursor.fetchone()
            if row is None or row[0] != "ok":
                return False
            cursor = await db.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'records'"
            )
            return await cursor.fetchone() is not None
    except sqlite3.DatabaseError:
        return False


class SqliteEngine:
    """SQLite-backed implementation of the :class:`StorageEngine` protocol.

    Usage::

        engine = SqliteEngine()
        await engine.open(store_dir)
        engine.put_record("exp-1", {"model": "Berlingo"})
        await engine.store()
        await engine.close()
    """

    def __init__(
        self,
        max_backups: int = DEFAULT_MAX_BACKUPS,
        backup_min_age_seconds: float = DEFAULT_BACKUP_MIN_AGE_SECONDS,
    ) -> None:
        self._max_backups = max_backups
        self._backup_min_age_seconds = backup_min_age_seconds
        self._db: aiosqlite.Connection | None = None
        self._lock: StoreLock | None = None
        self._path: Path | None = None
        self._records: dict[str, dict] = {}
        self._dirty = False
        self._hooks: dict[int, str] = {}
        self._next_hook = 1

    # ------------------------------------------------------------------
    # StorageEngine protocol
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._db is not None

    async def open(self, path: Path) -> None:
        if self._db is not None:
            raise EngineError(EngineTag.ALREADY_OPEN)
        if not (path / DATABASE_FILENAME).is_file():
            raise EngineError(EngineTag.NOT_FOUND)
        lock = self._acquire_lock(path)
        try:
            await self._connect(path)
        except BaseException:
            lock.release()
            raise
        self._lock = lock
        logger.info("Opened store %s (%d records)", path, len(self._records))

    async def create(self, path: Path) -> None:
        if path.exists() and any(path.iterdir()):
            raise EngineError(EngineTag.ALREADY_EXISTS, f"{path} is not empty")
        if self._db is not None:
            raise EngineError(EngineTag.ALREADY_OPEN)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise _unclassified(exc) from exc
        lock = self._acquire_lock(path)
        try:
            db = await aiosqlite.connect(path / DATABASE_FILENAME)
            try:
                await db.executescript(SCHEMA_SQL)
                await db.execute(
                    "INSERT OR REPLACE INTO archive_meta (key, value) VALUES ('created_at', ?)",
                    (format_instant(datetime.now(timezone.utc)),),
                )
                await db.commit()
            finally:
                await db.close()
            await self._connect(path)
        except sqlite3.Error as exc:
            lock.release()
            raise _unclassified(exc) from exc
        except BaseException:
            lock.release()
            raise
        self._lock = lock
        logger.info("Created store %s", path)

    async def release_stale_handles(self) -> None:
        released = len(self._hooks)
        self._hooks.clear()
        logger.info("Released %d stale record handles", released)

    async def store(self) -> None:
        db = self._db
        if db is None:
            raise EngineError(NOT_OPEN_TAG)
        now = format_instant(datetime.now(timezone.utc))
        if self._dirty:
            try:
                await db.execute("DELETE FROM records")
                await db.executemany(
                    "INSERT INTO records (key, body, updated_at) VALUES (?, ?, ?)",
                    [
                        (key, json.dumps(body, ensure_ascii=False), now)
                        for key, body in self._records.items()
                    ],
                )
                await db.execute(
                    "INSERT OR REPLACE INTO archive_meta (key, value) VALUES ('stored_at', ?)",
                    (now,),
                )
                await db.commit()
            except sqlite3.Error as exc:
                await db.rollback()
                raise _unclassified(exc) from exc
            self._dirty = False
            logger.debug("Stored %d records", len(self._records))
        try:
            await self._maybe_backup()
        except OSError as exc:
            raise _unclassified(exc) from exc

    async def query_integrity(self, path: Path) -> RollbackInfo:
        db_file = path / DATABASE_FILENAME
        if db_file.exists():
            corrupted_at = datetime.fromtimestamp(db_file.stat().st_mtime, timezone.utc)
            corrupted_instant = format_instant(corrupted_at)
        else:
            corrupted_instant = "unknown"
        candidate = await self._newest_valid_backup(path)
        if candidate is None:
            raise EngineError(EngineTag.NOT_FOUND, "no valid backup")
        return RollbackInfo(
            corrupted_instant=corrupted_instant,
            rollback_candidate_instant=format_instant(backup_instant(candidate)),
        )

    async def commit_rollback(self, path: Path) -> None:
        candidate = await self._newest_valid_backup(path)
        if candidate is None:
            raise EngineError(EngineTag.NOT_FOUND, "no valid backup")
        if self._db is not None:
            raise EngineError(EngineTag.ALREADY_OPEN)
        lock = self._acquire_lock(path)
        try:
            await asyncio.to_thread(self._swap_in_backup, path, candidate)
            await self._connect(path)
        except OSError as exc:
            lock.release()
            raise _unclassified(exc) from exc
        except BaseException:
            lock.release()
            raise
        self._lock = lock
        logger.warning("Rolled store %s back to backup %s", path, candidate.name)

    # ------------------------------------------------------------------
    # Record access (RecordEditor)
    # ------------------------------------------------------------------

    def records(self) -> dict[str, dict]:
        return dict(self._records)

    def get_record(self, key: str) -> dict | None:
        return self._records.get(key)

    def put_record(self, key: str, body: dict) -> None:
        self._ensure_open()
        self._records[key] = body
        self._dirty = True

    def delete_record(self, key: str) -> bool:
        self._ensure_open()
        if key not in self._records:
            return False
        del self._records[key]
        self._dirty = True
        return True

    def acquire_hook(self, key: str) -> int:
        """Register an editor's handle on *key*; returns the handle id."""
        self._ensure_open()
        hook_id = self._next_hook
        self._next_hook += 1
        self._hooks[hook_id] = key
        return hook_id

    def release_hook(self, hook_id: int) -> None:
        self._hooks.pop(hook_id, None)

    @property
    def hook_count(self) -> int:
        return len(self._hooks)

    async def close(self) -> None:
        """Close the database and release the lock. Does not store."""
        if self._db is not None:
            await self._db.close()
            self._db = None
        if self._lock is not None:
            self._lock.release()
            self._lock = None
        self._records = {}
        self._hooks.clear()
        self._dirty = False

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._db is None:
            raise EngineError(NOT_OPEN_TAG)

    @staticmethod
    def _acquire_lock(path: Path) -> StoreLock:
        try:
            return acquire_store_lock(path)
        except LockHeldError as exc:
            raise EngineError(EngineTag.COLLISION) from exc
        except OSError as exc:
            raise _unclassified(exc) from exc

    async def _connect(self, path: Path) -> None:
        """Connect to ``archive.db``, verify it and load every record."""
        try:
            db = await aiosqlite.connect(path / DATABASE_FILENAME)
        except sqlite3.Error as exc:
            raise _unclassified(exc) from exc
        try:
            cursor = await db.execute("PRAGMA integrity_check")
            row = await cursor.fetchone()
            if row is None or row[0] != "ok":
                raise EngineError(EngineTag.DATA_IS_CORRUPTED, f"integrity_check: {row}")
            await db.execute("PRAGMA synchronous=FULL")
            cursor = await db.execute("SELECT key, body FROM records")
            records = {key: json.loads(body) for key, body in await cursor.fetchall()}
        except (sqlite3.DatabaseError, json.JSONDecodeError) as exc:
            await db.close()
            raise EngineError(EngineTag.DATA_IS_CORRUPTED, str(exc)) from exc
        except BaseException:
            await db.close()
            raise
        self._db = db
        self._path = path
        self._records = records
        self._dirty = False

    async def _newest_valid_backup(self, path: Path) -> Path | None:
        for backup in list_backups(path):
            if await check_database_file(backup):
                return backup
            logger.warning("Skipping corrupt backup %s", backup.name)
        return None

    @staticmethod
    def _swap_in_backup(path: Path, backup: Path) -> None:
        db_file = path / DATABASE_FILENAME
        if db_file.exists():
            corrupted_dir = path / CORRUPTED_DIRNAME
            corrupted_dir.mkdir(exist_ok=True)
            stamp = datetime.now(timezone.utc).strftime(BACKUP_STAMP_FORMAT)
            db_file.replace(corrupted_dir / f"{BACKUP_PREFIX}{stamp}.db")
        journal = path / f"{DATABASE_FILENAME}-journal"
        if journal.exists():
            journal.unlink()
        shutil.copy2(backup, db_file)

    async def _maybe_backup(self) -> None:
        """Snapshot ``archive.db`` into backups/ if the newest one is old enough."""
        path = self._path
        if path is None:
            return
        now = datetime.now(timezone.utc)
        backups = list_backups(path)
        if backups:
            age = (now - backup_instant(backups[0])).total_seconds()
            if age < self._backup_min_age_seconds:
                return
        target = path / BACKUP_DIRNAME / f"{BACKUP_PREFIX}{now.strftime(BACKUP_STAMP_FORMAT)}.db"
        if target.exists():
            return
        await asyncio.to_thread(self._write_backup, path / DATABASE_FILENAME, target)
        logger.info("Backed up store to %s", target.name)
        for stale in list_backups(path)[self._max_backups:]:
            stale.unlink()
            logger.debug("Pruned backup %s", stale.name)

    @staticmethod
    def _write_backup(db_file: Path, target: Path) -> None:
        target.parent.mkdir(exist_ok=True)
        tmp = target.with_suffix(".tmp")
        shutil.copy2(db_file, tmp)
        tmp.rename(target)

