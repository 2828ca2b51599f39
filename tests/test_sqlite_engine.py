"""Tests for the SQLite reference engine against real temp directories.

Covers:
  - create / open / reopen with persisted records
  - tag vocabulary: NotFound, AlreadyExists, AlreadyOpen, Collision,
    DataIsCorrupted, NotOpen
  - backup rotation and integrity checks
  - rollback discovery and commit after corruption
"""

from __future__ import annotations

import re
import shutil
import sqlite3
from pathlib import Path

import aiosqlite
import pytest

from archivelib.constants import BACKUP_DIRNAME, CORRUPTED_DIRNAME, DATABASE_FILENAME
from archivelib.engine.exceptions import EngineError
from archivelib.engine.locking import is_store_locked
from archivelib.engine.sqlite_engine import (
    NOT_OPEN_TAG,
    SqliteEngine,
    check_database_file,
    list_backups,
)
from archivelib.models import EngineTag

INSTANT_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z$")


@pytest.fixture
def store_dir(tmp_path: Path) -> Path:
    return tmp_path / "Archive"


@pytest.fixture
async def engines():
    """Factory for engines that are all closed at teardown."""
    created: list[SqliteEngine] = []

    def make(**kwargs) -> SqliteEngine:
        engine = SqliteEngine(**kwargs)
        created.append(engine)
        return engine

    yield make
    for engine in created:
        await engine.close()


async def _create_with_records(store_dir: Path, engines, records: dict[str, dict]) -> SqliteEngine:
    engine = engines()
    await engine.create(store_dir)
    for key, body in records.items():
        engine.put_record(key, body)
    await engine.store()
    return engine


def _corrupt(store_dir: Path) -> None:
    (store_dir / DATABASE_FILENAME).write_bytes(b"this is not a sqlite database " * 200)


# ======================================================================
# Create / open
# ======================================================================


class TestCreateAndOpen:
    async def test_create_makes_directory_and_opens(self, store_dir, engines):
        engine = engines()
        await engine.create(store_dir)
        assert engine.is_open
        assert (store_dir / DATABASE_FILENAME).is_file()
        assert engine.records() == {}

    async def test_create_refuses_non_empty_folder(self, store_dir, engines):
        store_dir.mkdir()
        (store_dir / "notes.txt").write_text("mine")
        with pytest.raises(EngineError) as exc_info:
            await engines().create(store_dir)
        assert exc_info.value.is_tag(EngineTag.ALREADY_EXISTS)

    async def test_create_accepts_empty_existing_folder(self, store_dir, engines):
        store_dir.mkdir()
        engine = engines()
        await engine.create(store_dir)
        assert engine.is_open

    async def test_open_missing_is_not_found(self, store_dir, engines):
        with pytest.raises(EngineError) as exc_info:
            await engines().open(store_dir)
        assert exc_info.value.tag == "NotFound"

    async def test_records_survive_reopen(self, store_dir, engines):
        first = await _create_with_records(
            store_dir, engines, {"exp-1": {"model": "Berlingo", "km": 120}}
        )
        await first.close()

        second = engines()
        await second.open(store_dir)
        assert second.get_record("exp-1") == {"model": "Berlingo", "km": 120}

    async def test_second_open_in_same_engine_is_already_open(self, store_dir, engines):
        engine = engines()
        await engine.create(store_dir)
        with pytest.raises(EngineError) as exc_info:
            await engine.open(store_dir)
        assert exc_info.value.is_tag(EngineTag.ALREADY_OPEN)

    async def test_second_engine_collides(self, store_dir, engines):
        await engines().create(store_dir)
        with pytest.raises(EngineError) as exc_info:
            await engines().open(store_dir)
        assert exc_info.value.is_tag(EngineTag.COLLISION)

    async def test_lock_released_on_close(self, store_dir, engines):
        engine = engines()
        await engine.create(store_dir)
        assert is_store_locked(store_dir)
        await engine.close()
        assert not is_store_locked(store_dir)

    async def test_release_stale_handles(self, store_dir, engines):
        engine = engines()
        await engine.create(store_dir)
        engine.acquire_hook("a")
        engine.acquire_hook("b")
        assert engine.hook_count == 2
        await engine.release_stale_handles()
        assert engine.hook_count == 0
        assert engine.is_open

    async def test_unopenable_database_is_unclassified(self, store_dir, engines, monkeypatch):
        first = await _create_with_records(store_dir, engines, {"a": {"n": 1}})
        await first.close()

        async def refuse(*args, **kwargs):
            raise sqlite3.OperationalError("unable to open database file")

        monkeypatch.setattr(aiosqlite, "connect", refuse)
        reopened = engines()
        with pytest.raises(EngineError) as exc_info:
            await reopened.open(store_dir)
        assert exc_info.value.tag == "OperationalError: unable to open database file"
        assert not reopened.is_open
        assert not is_store_locked(store_dir)


# ======================================================================
# Store / backups
# ======================================================================


class TestStore:
    async def test_store_when_closed_is_not_open(self, engines):
        with pytest.raises(EngineError) as exc_info:
            await engines().store()
        assert exc_info.value.tag == NOT_OPEN_TAG

    async def test_put_record_when_closed_raises(self, engines):
        with pytest.raises(EngineError):
            engines().put_record("k", {})

    async def test_delete_record(self, store_dir, engines):
        engine = await _create_with_records(store_dir, engines, {"a": {"n": 1}})
        assert engine.delete_record("a") is True
        assert engine.delete_record("a") is False
        await engine.store()
        await engine.close()

        reopened = engines()
        await reopened.open(store_dir)
        assert reopened.records() == {}

    async def test_first_store_takes_backup(self, store_dir, engines):
        await _create_with_records(store_dir, engines, {"a": {"n": 1}})
        backups = list_backups(store_dir)
        assert len(backups) == 1
        assert await check_database_file(backups[0])

    async def test_backups_respect_min_age(self, store_dir, engines):
        engine = await _create_with_records(store_dir, engines, {"a": {"n": 1}})
        engine.put_record("b", {"n": 2})
        await engine.store()
        assert len(list_backups(store_dir)) == 1

    async def test_backups_pruned_to_max(self, store_dir, engines):
        engine = engines(max_backups=2, backup_min_age_seconds=0)
        await engine.create(store_dir)
        backup_dir = store_dir / BACKUP_DIRNAME
        backup_dir.mkdir()
        for stamp in ("20200101T000000Z", "20210101T000000Z", "20220101T000000Z"):
            shutil.copy2(store_dir / DATABASE_FILENAME, backup_dir / f"archive-{stamp}.db")

        engine.put_record("a", {"n": 1})
        await engine.store()

        names = [p.name for p in list_backups(store_dir)]
        assert len(names) == 2
        assert names[1] == "archive-20220101T000000Z.db"

    async def test_list_backups_ignores_unrelated_files(self, store_dir, engines):
        await _create_with_records(store_dir, engines, {"a": {"n": 1}})
        (store_dir / BACKUP_DIRNAME / "archive-latest.db").write_text("x")
        (store_dir / BACKUP_DIRNAME / "readme.txt").write_text("x")
        assert len(list_backups(store_dir)) == 1

    async def test_check_database_file_rejects_garbage(self, tmp_path):
        garbage = tmp_path / "garbage.db"
        garbage.write_bytes(b"\x00\x01garbage" * 100)
        assert await check_database_file(garbage) is False
        assert await check_database_file(tmp_path / "missing.db") is False


# ======================================================================
# Corruption and rollback
# ======================================================================


class TestRollback:
    async def test_corrupted_open_reports_tag_and_releases_lock(self, store_dir, engines):
        engine = await _create_with_records(store_dir, engines, {"a": {"n": 1}})
        await engine.close()
        _corrupt(store_dir)

        reopened = engines()
        with pytest.raises(EngineError) as exc_info:
            await reopened.open(store_dir)
        assert exc_info.value.is_tag(EngineTag.DATA_IS_CORRUPTED)
        assert not reopened.is_open
        assert not is_store_locked(store_dir)

    async def test_query_integrity_reports_instants(self, store_dir, engines):
        engine = await _create_with_records(store_dir, engines, {"a": {"n": 1}})
        await engine.close()
        _corrupt(store_dir)

        info = await engines().query_integrity(store_dir)
        assert INSTANT_RE.match(info.corrupted_instant)
        assert INSTANT_RE.match(info.rollback_candidate_instant)

    async def test_commit_rollback_restores_backup(self, store_dir, engines):
        engine = await _create_with_records(store_dir, engines, {"a": {"n": 1}})
        await engine.close()
        _corrupt(store_dir)

        recovering = engines()
        with pytest.raises(EngineError):
            await recovering.open(store_dir)
        await recovering.commit_rollback(store_dir)

        assert recovering.is_open
        assert recovering.get_record("a") == {"n": 1}
        assert len(list((store_dir / CORRUPTED_DIRNAME).iterdir())) == 1

    async def test_corrupt_backups_are_skipped(self, store_dir, engines):
        engine = await _create_with_records(store_dir, engines, {"a": {"n": 1}})
        await engine.close()
        newer = store_dir / BACKUP_DIRNAME / "archive-29990101T000000Z.db"
        newer.write_bytes(b"broken" * 100)
        _corrupt(store_dir)

        info = await engines().query_integrity(store_dir)
        assert not info.rollback_candidate_instant.startswith("2999")

    async def test_no_backup_is_not_found(self, store_dir, engines):
        engine = engines()
        await engine.create(store_dir)
        await engine.close()
        _corrupt(store_dir)

        recovering = engines()
        with pytest.raises(EngineError) as exc_info:
            await recovering.query_integrity(store_dir)
        assert exc_info.value.is_tag(EngineTag.NOT_FOUND)
        with pytest.raises(EngineError) as exc_info:
            await recovering.commit_rollback(store_dir)
        assert exc_info.value.is_tag(EngineTag.NOT_FOUND)

    async def test_commit_rollback_collides_with_other_holder(self, store_dir, engines):
        holder = await _create_with_records(store_dir, engines, {"a": {"n": 1}})
        with pytest.raises(EngineError) as exc_info:
            await engines().commit_rollback(store_dir)
        assert exc_info.value.is_tag(EngineTag.COLLISION)
        assert holder.is_open
