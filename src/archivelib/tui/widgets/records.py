"""Records pane: table of the records held by the open store."""

from __future__ import annotations

import json

from textual.widgets import DataTable

from archivelib.telemetry import get_telemetry

BODY_PREVIEW_CHARS = 60


class RecordsTable(DataTable):
    DEFAULT_CSS = """
    RecordsTable {
        height: 1fr;
    }
    """

    def __init__(self) -> None:
        super().__init__(id="records", cursor_type="row", zebra_stripes=True)

    def on_mount(self) -> None:
        self.add_columns("key", "body")

    def show_records(self, records: dict[str, dict]) -> None:
        """Replace the table contents with *records*, sorted by key."""
        self.clear()
        for key in sorted(records):
            body = json.dumps(records[key], ensure_ascii=False)
            if len(body) > BODY_PREVIEW_CHARS:
                body = body[: BODY_PREVIEW_CHARS - 3] + "..."
            self.add_row(key, body, key=key)
        get_telemetry().log.info(f"records shown count={len(records)}")

    @property
    def selected_key(self) -> str | None:
        """Key of the record under the cursor, or None when the table is empty."""
        if self.row_count == 0:
            return None
        row_key, _ = self.coordinate_to_cell_key(self.cursor_coordinate)
        return row_key.value
