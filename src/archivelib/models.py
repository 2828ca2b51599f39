"""Data models and enums for the archive lifecycle controller."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from archivelib.constants import (
    CHECKPOINT_INTERVAL_SECONDS,
    DEFAULT_BACKUP_MIN_AGE_SECONDS,
    DEFAULT_MAX_BACKUPS,
)


class EngineTag(str, Enum):
    """Failure tags the storage engine is known to report.

    Engines may report other tags too; those travel as raw strings and
    are handled as unclassified failures.
    """

    NOT_FOUND = "NotFound"
    COLLISION = "Collision"
    DATA_IS_CORRUPTED = "DataIsCorrupted"
    ALREADY_OPEN = "AlreadyOpen"
    ALREADY_EXISTS = "AlreadyExists"


class LifecycleState(str, Enum):
    """Where the store is in its open/recover lifecycle."""

    UNRESOLVED = "unresolved"
    OPENING = "opening"
    OPEN = "open"
    AWAITING_CREATION = "awaiting_creation"
    AWAITING_ROLLBACK_CHOICE = "awaiting_rollback_choice"
    ROLLING_BACK = "rolling_back"
    BLOCKED = "blocked"


class Command(str, Enum):
    """Remediation action a blocking condition offers to the user."""

    CREATE_STORE = "create_store"
    BEGIN_ROLLBACK_DISCOVERY = "begin_rollback_discovery"
    COMMIT_ROLLBACK = "commit_rollback"
    TERMINATE_PROCESS = "terminate_process"


@dataclass(frozen=True)
class BlockingCondition:
    """The single user-facing descriptor of an unresolved lifecycle problem.

    ``token`` is stamped by the status channel when the condition is
    published; it identifies which publication a UI action belongs to.
    It is excluded from equality so two conditions with the same text
    compare equal regardless of when they were shown.
    """

    title: str
    detail: str | None = None
    action_label: str | None = None
    action: Command | None = None
    token: int = field(default=0, compare=False)

    @property
    def is_fatal(self) -> bool:
        """True when the only way out is terminating the process."""
        return self.action is Command.TERMINATE_PROCESS


@dataclass(frozen=True)
class RollbackInfo:
    """Integrity metadata reported by the engine for a corrupted store."""

    corrupted_instant: str
    rollback_candidate_instant: str


@dataclass
class LifecycleConfig:
    """Configuration for the lifecycle controller and reference engine.

    The storage location is not configurable: it is always the user's
    documents directory plus ``STORE_FOLDER_NAME``.
    """

    checkpoint_interval_seconds: float = CHECKPOINT_INTERVAL_SECONDS
    max_backups: int = DEFAULT_MAX_BACKUPS
    backup_min_age_seconds: float = DEFAULT_BACKUP_MIN_AGE_SECONDS
    log_dir: str = "logs"
