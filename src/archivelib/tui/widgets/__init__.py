"""TUI widget modules for the archive interface."""

from .blocking_modal import BlockingConditionScreen
from .record_editor import RecordEdit, RecordEditorScreen
from .records import RecordsTable

__all__ = [
    "BlockingConditionScreen",
    "RecordEdit",
    "RecordEditorScreen",
    "RecordsTable",
]
