"""Custom Textual Message types for the archive TUI.

Screens and widgets never call the lifecycle directly; they post these
messages and the App routes them.
"""

from __future__ import annotations

from textual.message import Message

from archivelib.models import BlockingCondition


class ConditionActionRequested(Message):
    """Fired when the user presses the action button of a blocking condition."""

    def __init__(self, condition: BlockingCondition) -> None:
        self.condition = condition
        super().__init__()
