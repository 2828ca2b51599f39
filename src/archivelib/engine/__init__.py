"""Storage engine boundary and the SQLite reference engine."""

from archivelib.engine.exceptions import EngineError, LockHeldError
from archivelib.engine.protocol import RecordEditor, StorageEngine
from archivelib.engine.sqlite_engine import SqliteEngine

__all__ = [
    "EngineError",
    "LockHeldError",
    "RecordEditor",
    "SqliteEngine",
    "StorageEngine",
]
