"""Archive interactive TUI.

Provides a Textual-based terminal interface that opens the archive store,
shows its records and renders any blocking condition as a modal.
"""

from __future__ import annotations

from pathlib import Path


def run_tui(
    config_path: Path | None = None,
    documents_dir: Path | None = None,
) -> None:
    """Load configuration, build the engine and run the Textual app.

    Imports are deferred so the CLI stays fast for non-TUI commands.

    Args:
        config_path: Optional explicit path to lifecycle_config.json.
        documents_dir: Override for the user documents directory.
    """
    from archivelib.config import load_lifecycle_config, resolve_storage_path
    from archivelib.engine.sqlite_engine import SqliteEngine
    from archivelib.telemetry import configure_file_logging
    from archivelib.tui.app import ArchiveApp

    config = load_lifecycle_config(config_path)
    configure_file_logging(config.log_dir)
    engine = SqliteEngine(
        max_backups=config.max_backups,
        backup_min_age_seconds=config.backup_min_age_seconds,
    )
    app = ArchiveApp(
        engine=engine,
        storage_path=resolve_storage_path(documents_dir),
        config=config,
    )
    app.run()
