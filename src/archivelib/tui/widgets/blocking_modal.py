"""Modal screen rendering the current blocking condition.

The screen stays on the stack for as long as the channel holds a
condition; the App swaps its content in place when one condition
replaces another, and pops it when the channel clears.
"""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Static

from archivelib.models import BlockingCondition
from archivelib.tui.messages import ConditionActionRequested


class BlockingConditionScreen(ModalScreen[None]):
    """Title, optional detail and at most one action button.

    There is no escape binding: the only way past a condition is its
    action (or the channel clearing it).
    """

    DEFAULT_CSS = """
    BlockingConditionScreen {
        align: center middle;
    }
    #condition-box {
        width: 64;
        max-width: 90%;
        height: auto;
        background: $surface;
        border: thick $error;
        padding: 1 2;
    }
    #condition-title {
        text-style: bold;
        color: $error;
        padding: 0 0 1 0;
    }
    #condition-detail {
        color: $text-muted;
        padding: 0 0 1 0;
    }
    #condition-action {
        width: 100%;
    }
    """

    def __init__(self, condition: BlockingCondition) -> None:
        super().__init__(id="blocking-condition")
        self.condition = condition

    def compose(self) -> ComposeResult:
        with Vertical(id="condition-box"):
            yield Static("", id="condition-title")
            yield Static("", id="condition-detail")
            yield Button("", id="condition-action", variant="error")

    def on_mount(self) -> None:
        self._render_condition()

    def show(self, condition: BlockingCondition) -> None:
        """Replace the displayed condition."""
        self.condition = condition
        if self.is_mounted:
            self._render_condition()

    def _render_condition(self) -> None:
        condition = self.condition
        self.query_one("#condition-title", Static).update(condition.title)
        detail = self.query_one("#condition-detail", Static)
        detail.update(condition.detail or "")
        detail.display = bool(condition.detail)
        button = self.query_one("#condition-action", Button)
        button.label = condition.action_label or ""
        button.display = condition.action_label is not None
        button.variant = "error" if condition.is_fatal else "primary"

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "condition-action":
            event.stop()
            self.post_message(ConditionActionRequested(self.condition))
