"""Archive TUI Application.

Main Textual App: records pane, status bar and the blocking-condition
modal. The App owns a ``LifecycleRuntime``; it renders whatever the
status channel holds and routes the modal's action to the dispatcher.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Callable

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import DataTable, Footer, Header, Static

from archivelib.engine.exceptions import EngineError
from archivelib.engine.protocol import RecordEditor, StorageEngine
from archivelib.lifecycle.runtime import LifecycleRuntime
from archivelib.lifecycle.scheduler import SleepFn
from archivelib.models import BlockingCondition, LifecycleConfig, LifecycleState
from archivelib.telemetry import Telemetry, set_telemetry
from archivelib.tui.messages import ConditionActionRequested
from archivelib.tui.providers import ArchiveCommands
from archivelib.tui.widgets import (
    BlockingConditionScreen,
    RecordEdit,
    RecordEditorScreen,
    RecordsTable,
)

NEW_RECORD_HOOK = "<new record>"


class ArchiveApp(App):
    """Archive terminal application.

    Args:
        engine: Storage engine the lifecycle drives.
        storage_path: Resolved store directory.
        config: Lifecycle configuration (checkpoint interval, backups).
        telemetry: OTel facade. Defaults to no-op.
        terminate: Exit callback; defaults to ``App.exit``.
        sleep: Scheduler sleep function (tests pass a manual clock).
    """

    TITLE = "Archive"
    SUB_TITLE = "Local record store"
    COMMANDS = App.COMMANDS | {ArchiveCommands}

    CSS = """
    #records-pane {
        height: 1fr;
    }

    #status-bar {
        dock: bottom;
        height: 1;
        background: $primary-background;
        color: $text;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("ctrl+q", "quit", "Save & Quit", priority=True),
        Binding("ctrl+s", "save_now", "Save"),
        Binding("n", "new_record", "New"),
        Binding("e", "edit_record", "Edit"),
        ("ctrl+p", "command_palette", "Commands"),
    ]

    def __init__(
        self,
        engine: StorageEngine,
        storage_path: Path,
        config: LifecycleConfig | None = None,
        telemetry: Telemetry | None = None,
        terminate: Callable[[], None] | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        super().__init__()
        self.storage_path = storage_path
        self.telemetry = telemetry if telemetry is not None else Telemetry.noop()
        set_telemetry(self.telemetry)
        self.runtime = LifecycleRuntime.build(
            engine,
            terminate=terminate if terminate is not None else self.exit,
            config=config,
            telemetry=self.telemetry,
            sleep=sleep,
        )
        self._modal: BlockingConditionScreen | None = None
        self._subscription = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="records-pane"):
            yield RecordsTable()
        yield Static("Starting...", id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        """Subscribe to the status channel and open the store."""
        self._subscription = self.runtime.context.channel.observe().subscribe(
            on_next=self._on_condition
        )
        self.set_interval(5.0, self._update_status)
        self.run_worker(self._bootstrap(), name="bootstrap", exclusive=True)

    async def _bootstrap(self) -> None:
        with self.telemetry.span("app.bootstrap", self.storage_path) as span:
            await self.runtime.bootstrap(self.storage_path)
            span.set_attribute("lifecycle.state", self.runtime.context.state.value)
        self._refresh_records()
        self._update_status()

    # ------------------------------------------------------------------
    # Status channel rendering
    # ------------------------------------------------------------------

    def _on_condition(self, condition: BlockingCondition | None) -> None:
        """Show, replace or dismiss the modal to mirror the channel."""
        if condition is None:
            if self._modal is not None:
                modal, self._modal = self._modal, None
                if self.screen is modal:
                    self.pop_screen()
                else:
                    self.telemetry.log.warning("blocking modal not on top; leaving it")
            if self.runtime.context.state is LifecycleState.OPEN:
                self._refresh_records()
        elif self._modal is not None:
            self._modal.show(condition)
        else:
            self._modal = BlockingConditionScreen(condition)
            self.push_screen(self._modal)
        self._update_status()

    def _update_status(self) -> None:
        state = self.runtime.context.state.value
        saved_at = self.runtime.checkpointer.last_saved_at
        saved = (
            saved_at.astimezone().strftime("%H:%M:%S") if saved_at is not None else "never"
        )
        try:
            self.query_one("#status-bar", Static).update(
                f"{state} | last save: {saved} | Ctrl+S: Save | Ctrl+P: Commands"
            )
        except Exception:
            pass  # Status bar not mounted yet or already torn down

    def _refresh_records(self) -> None:
        engine = self.runtime.engine
        if not isinstance(engine, RecordEditor) or self.runtime.context.state is not LifecycleState.OPEN:
            return
        try:
            self.query_one(RecordsTable).show_records(engine.records())
        except Exception as e:
            self.telemetry.log.error(f"failed to show records error={e!r}")

    # ------------------------------------------------------------------
    # Record editing
    # ------------------------------------------------------------------

    def _editor(self) -> RecordEditor | None:
        engine = self.runtime.engine
        if not isinstance(engine, RecordEditor):
            return None
        if (
            self.runtime.context.state is not LifecycleState.OPEN
            or self.runtime.context.condition is not None
        ):
            return None
        return engine

    def action_new_record(self) -> None:
        self._open_editor(None)

    def action_edit_record(self) -> None:
        key = self.query_one(RecordsTable).selected_key
        if key is None:
            self.notify("No record selected", severity="warning")
            return
        self._open_editor(key)

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        if event.row_key.value is not None:
            self._open_editor(event.row_key.value)

    def _open_editor(self, key: str | None) -> None:
        """Hold a hook on the store for as long as the editor is shown."""
        editor = self._editor()
        if editor is None:
            self.notify("Records cannot be edited: store is not open", severity="warning")
            return
        try:
            hook_id = editor.acquire_hook(key or NEW_RECORD_HOOK)
        except EngineError as e:
            self.notify(f"Cannot edit: {e.tag}", severity="error")
            return
        body = editor.get_record(key) if key is not None else None

        def on_result(edit: RecordEdit | None) -> None:
            try:
                if edit is not None:
                    self._apply_edit(editor, edit)
            finally:
                editor.release_hook(hook_id)
            self._refresh_records()

        self.push_screen(RecordEditorScreen(key, body), callback=on_result)

    def _apply_edit(self, editor: RecordEditor, edit: RecordEdit) -> None:
        try:
            if edit.body is None:
                editor.delete_record(edit.key)
            else:
                editor.put_record(edit.key, edit.body)
        except EngineError as e:
            self.telemetry.log.error(f"record edit failed key={edit.key!r} tag={e.tag}")
            self.notify(f"Edit not applied: {e.tag}", severity="error")
            return
        self.telemetry.log.info(
            f"record {'deleted' if edit.body is None else 'saved'} key={edit.key!r}"
        )

    # ------------------------------------------------------------------
    # Message handlers
    # ------------------------------------------------------------------

    def on_condition_action_requested(self, event: ConditionActionRequested) -> None:
        """Route a modal action to the dispatcher without blocking the UI."""
        self.telemetry.log.info(f"condition action requested title={event.condition.title!r}")
        self.run_worker(
            self.runtime.dispatcher.invoke(event.condition),
            name="command",
            group="commands",
        )

    # ------------------------------------------------------------------
    # Key binding actions
    # ------------------------------------------------------------------

    async def action_quit(self) -> None:
        """Save one last time, then exit regardless of the outcome."""
        await self.runtime.shutdown.save_and_terminate()

    async def action_save_now(self) -> None:
        with self.telemetry.span("app.save_now") as span:
            saved = await self.runtime.checkpointer.checkpoint()
            span.set_attribute("save.ok", saved)
        if saved:
            self.notify("Saved")
        elif self.runtime.context.condition is None:
            self.notify("Nothing to save: store is not open", severity="warning")
        self._update_status()

    async def on_unmount(self) -> None:
        """Stop checkpoints, dispose the channel subscription, close the engine."""
        await self.runtime.scheduler.stop()
        if self._subscription is not None:
            self._subscription.dispose()
            self._subscription = None
        close = getattr(self.runtime.engine, "close", None)
        if callable(close):
            try:
                await close()
            except Exception as e:
                self.telemetry.log.error(f"engine close failed error={e!r}")
