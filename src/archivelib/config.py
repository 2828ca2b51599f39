"""Configuration loading and storage path resolution."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from platformdirs import user_documents_dir

from archivelib.constants import STORE_FOLDER_NAME
from archivelib.models import LifecycleConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/lifecycle_config.json")


def resolve_storage_path(documents_dir: str | Path | None = None) -> Path:
    """Return the absolute directory of the store.

    The location is the OS-provided user documents directory plus the
    fixed ``Archive`` subfolder. Callers resolve it once at startup and
    hand the result to ``LifecycleContext``.

    Args:
        documents_dir: Override for the documents directory (tests only).

    Returns:
        Absolute path of the store directory. The directory itself is
        not created here -- creating it is the engine's job.
    """
    base = Path(documents_dir) if documents_dir is not None else Path(user_documents_dir())
    return (base.expanduser() / STORE_FOLDER_NAME).absolute()


def load_lifecycle_config(config_path: Path | None = None) -> LifecycleConfig:
    """Load lifecycle configuration from JSON, falling back to defaults.

    Reads from ``config/lifecycle_config.json`` when *config_path* is
    ``None``. If the file does not exist, returns a ``LifecycleConfig``
    with defaults. Unknown keys are ignored.

    Args:
        config_path: Optional explicit path to lifecycle_config.json.

    Returns:
        LifecycleConfig populated from the file over the defaults.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    data: dict = {}
    if config_path.exists():
        with open(config_path) as f:
            data = json.load(f)

    # Build kwargs from JSON data, only including recognised fields
    field_names = {f.name for f in LifecycleConfig.__dataclass_fields__.values()}
    kwargs = {k: v for k, v in data.items() if k in field_names}
    ignored = sorted(set(data) - field_names)
    if ignored:
        logger.warning("Ignoring unknown config keys in %s: %s", config_path, ignored)

    config = LifecycleConfig(**kwargs)
    if config.checkpoint_interval_seconds <= 0:
        raise ValueError(
            f"checkpoint_interval_seconds must be positive, "
            f"got {config.checkpoint_interval_seconds}"
        )
    if config.max_backups < 1:
        raise ValueError(f"max_backups must be at least 1, got {config.max_backups}")
    return config
