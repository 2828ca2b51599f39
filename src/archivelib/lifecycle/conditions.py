"""Factories for every blocking condition the lifecycle can raise.

Kept in one place so the UI wording and the button each condition offers
can be reviewed together.
"""

from __future__ import annotations

from pathlib import Path

from archivelib.models import BlockingCondition, Command, RollbackInfo

CLOSE_LABEL = "close"
CORRUPTED_TITLE = "corrupted data found in the database"
NO_BACKUP_DETAIL = "no backup could be recovered"


def fatal(title: str, detail: str | None = None) -> BlockingCondition:
    """A condition whose only way out is closing the application."""
    return BlockingCondition(
        title=title,
        detail=detail,
        action_label=CLOSE_LABEL,
        action=Command.TERMINATE_PROCESS,
    )


def unclassified(tag: str) -> BlockingCondition:
    return fatal("error", tag)


def lock_held() -> BlockingCondition:
    return fatal("app already open")


def no_database() -> BlockingCondition:
    return BlockingCondition(
        title="no database found",
        action_label="create",
        action=Command.CREATE_STORE,
    )


def already_exists(path: Path) -> BlockingCondition:
    return fatal("error creating database", f"the folder '{path}' is not empty")


def searching_backup() -> BlockingCondition:
    """Informational; carries no action."""
    return BlockingCondition(
        title=CORRUPTED_TITLE,
        detail="searching for the most recent non-corrupt backup ...",
    )


def rollback_offer(info: RollbackInfo) -> BlockingCondition:
    return BlockingCondition(
        title=CORRUPTED_TITLE,
        detail=(
            f"corrupted data:   {info.corrupted_instant}\n"
            f"backup:   {info.rollback_candidate_instant}"
        ),
        action_label="continue from backup",
        action=Command.COMMIT_ROLLBACK,
    )


def no_backup_after_corruption() -> BlockingCondition:
    return fatal(CORRUPTED_TITLE, NO_BACKUP_DETAIL)


def no_backup_recoverable() -> BlockingCondition:
    return fatal(NO_BACKUP_DETAIL)


def save_failed(tag: str) -> BlockingCondition:
    return fatal("error saving data!!!", tag)
