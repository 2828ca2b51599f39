"""Record editor modal: create, change or delete one record.

Dismisses with a ``RecordEdit`` (or None when cancelled). The App applies
the edit to the engine's in-memory records; the next checkpoint persists
it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Static


@dataclass(frozen=True)
class RecordEdit:
    """Outcome of the editor. ``body`` is None when the record is deleted."""

    key: str
    body: dict | None


class RecordEditorScreen(ModalScreen[RecordEdit | None]):
    """Key and JSON body inputs with save, delete and cancel buttons.

    The key of an existing record cannot be changed; delete it and create
    a new one instead.
    """

    DEFAULT_CSS = """
    RecordEditorScreen {
        align: center middle;
    }
    #editor-box {
        width: 72;
        max-width: 90%;
        height: auto;
        background: $surface;
        border: thick $primary;
        padding: 1 2;
    }
    #editor-title {
        text-style: bold;
        padding: 0 0 1 0;
    }
    #editor-key, #editor-body {
        width: 100%;
        margin: 0 0 1 0;
    }
    #editor-error {
        color: $error;
    }
    #editor-buttons {
        height: auto;
        padding: 1 0 0 0;
    }
    """

    BINDINGS = [
        Binding("escape", "cancel", "Cancel"),
    ]

    def __init__(self, key: str | None = None, body: dict | None = None) -> None:
        super().__init__(id="record-editor")
        self.key = key
        self.body = body

    def compose(self) -> ComposeResult:
        with Vertical(id="editor-box"):
            yield Static(
                "new record" if self.key is None else f"edit {self.key}",
                id="editor-title",
            )
            yield Input(
                value=self.key or "",
                placeholder="key",
                id="editor-key",
                disabled=self.key is not None,
            )
            yield Input(
                value=json.dumps(self.body if self.body is not None else {}, ensure_ascii=False),
                placeholder='{"field": "value"}',
                id="editor-body",
            )
            yield Static("", id="editor-error")
            with Horizontal(id="editor-buttons"):
                yield Button("save", id="editor-save", variant="primary")
                if self.key is not None:
                    yield Button("delete", id="editor-delete", variant="error")
                yield Button("cancel", id="editor-cancel")

    def on_mount(self) -> None:
        target = "#editor-key" if self.key is None else "#editor-body"
        self.query_one(target, Input).focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        if event.button.id == "editor-save":
            self._submit()
        elif event.button.id == "editor-delete" and self.key is not None:
            self.dismiss(RecordEdit(self.key, None))
        elif event.button.id == "editor-cancel":
            self.dismiss(None)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self._submit()

    def action_cancel(self) -> None:
        self.dismiss(None)

    def _submit(self) -> None:
        key = self.query_one("#editor-key", Input).value.strip()
        if not key:
            self._show_error("key must not be empty")
            return
        try:
            body = json.loads(self.query_one("#editor-body", Input).value)
        except json.JSONDecodeError as exc:
            self._show_error(f"invalid JSON: {exc.msg}")
            return
        if not isinstance(body, dict):
            self._show_error("body must be a JSON object")
            return
        self.dismiss(RecordEdit(key, body))

    def _show_error(self, message: str) -> None:
        self.query_one("#editor-error", Static).update(message)
