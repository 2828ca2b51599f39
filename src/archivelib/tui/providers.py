"""Command palette provider for the archive TUI."""

from __future__ import annotations

from functools import partial

from textual.command import Hit, Hits, Provider


class ArchiveCommands(Provider):
    """Exposes the record and save actions in the Ctrl+P palette."""

    COMMANDS: dict[str, str] = {
        "New Record": "new_record",
        "Edit Record": "edit_record",
        "Save Now": "save_now",
        "Save and Quit": "quit",
    }

    async def search(self, query: str) -> Hits:
        matcher = self.matcher(query)
        for name, action in self.COMMANDS.items():
            score = matcher.match(name)
            if score > 0:
                yield Hit(
                    score,
                    matcher.highlight(name),
                    partial(self.app.run_action, action),
                )
