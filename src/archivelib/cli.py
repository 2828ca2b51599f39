"""CLI entry point for the archive store.

Provides commands:
  - run: Launch the TUI (default when no subcommand is given)
  - status: Storage path, lock holder, database size and newest backup
  - backups: List rotated backups with their integrity
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from archivelib.config import resolve_storage_path
from archivelib.constants import DATABASE_FILENAME
from archivelib.engine.locking import is_store_locked
from archivelib.engine.sqlite_engine import (
    backup_instant,
    check_database_file,
    format_instant,
    list_backups,
)

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Archive - local record store with crash-safe checkpoints and rollback",
    rich_markup_mode="rich",
)
console = Console()

DocumentsOption = Annotated[
    Path | None,
    typer.Option(
        "--documents-dir",
        help="Override the user documents directory the store lives in",
    ),
]


def _format_size(size: int) -> str:
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


@app.callback(invoke_without_command=True)
def app_callback(
    ctx: typer.Context,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to lifecycle_config.json"),
    ] = None,
    documents_dir: DocumentsOption = None,
) -> None:
    """Launch the TUI when no subcommand is given."""
    if ctx.invoked_subcommand is None:
        run(config_path=config_path, documents_dir=documents_dir)


@app.command()
def run(
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to lifecycle_config.json"),
    ] = None,
    documents_dir: DocumentsOption = None,
) -> None:
    """Launch the interactive TUI."""
    from archivelib.tui import run_tui

    try:
        run_tui(config_path=config_path, documents_dir=documents_dir)
    except ValueError as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(code=1)


@app.command()
def status(documents_dir: DocumentsOption = None) -> None:
    """Show where the store lives and whether it is in use."""
    store_dir = resolve_storage_path(documents_dir)
    db_file = store_dir / DATABASE_FILENAME

    console.print(Panel(f"Store: [bold]{store_dir}[/bold]", title="Archive Status"))

    if not db_file.is_file():
        console.print(
            "[yellow]No database found.[/yellow] "
            "Run [bold]archivelib run[/bold] to create one."
        )
        raise typer.Exit(code=1)

    locked = is_store_locked(store_dir)
    backups = list_backups(store_dir)

    table = Table(show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Database", _format_size(db_file.stat().st_size))
    table.add_row("In use", "[yellow]yes[/yellow]" if locked else "[green]no[/green]")
    table.add_row("Backups", str(len(backups)))
    table.add_row(
        "Newest backup",
        format_instant(backup_instant(backups[0])) if backups else "[dim]none[/dim]",
    )
    console.print(table)


@app.command()
def backups(documents_dir: DocumentsOption = None) -> None:
    """List backups newest first, with a read-only integrity check of each."""
    store_dir = resolve_storage_path(documents_dir)
    found = list_backups(store_dir)
    if not found:
        console.print(f"[yellow]No backups in[/yellow] {store_dir}")
        raise typer.Exit(code=1)

    async def _check_all() -> list[bool]:
        return [await check_database_file(p) for p in found]

    checks = asyncio.run(_check_all())

    table = Table(title=f"Backups ({len(found)})")
    table.add_column("Instant", style="bold", no_wrap=True)
    table.add_column("File")
    table.add_column("Size", justify="right")
    table.add_column("Integrity", no_wrap=True)
    for path, ok in zip(found, checks):
        table.add_row(
            format_instant(backup_instant(path)),
            path.name,
            _format_size(path.stat().st_size),
            "[green]ok[/green]" if ok else "[red]corrupt[/red]",
        )
    console.print(table)
