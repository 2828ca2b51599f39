"""Tests for configuration loading and storage path resolution."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from archivelib.config import load_lifecycle_config, resolve_storage_path
from archivelib.constants import CHECKPOINT_INTERVAL_SECONDS


def test_storage_path_is_documents_plus_archive(tmp_path):
    assert resolve_storage_path(tmp_path) == (tmp_path / "Archive").absolute()


def test_storage_path_defaults_to_platform_documents(monkeypatch, tmp_path):
    monkeypatch.setattr("archivelib.config.user_documents_dir", lambda: str(tmp_path / "Docs"))
    assert resolve_storage_path() == (tmp_path / "Docs" / "Archive").absolute()


def test_storage_path_is_absolute():
    assert resolve_storage_path(Path("relative-docs")).is_absolute()


def test_missing_file_gives_defaults(tmp_path):
    config = load_lifecycle_config(tmp_path / "nope.json")
    assert config.checkpoint_interval_seconds == CHECKPOINT_INTERVAL_SECONDS == 30.0
    assert config.max_backups == 10


def test_file_overrides_defaults(tmp_path):
    path = tmp_path / "lifecycle_config.json"
    path.write_text(json.dumps({"checkpoint_interval_seconds": 5, "max_backups": 3}))
    config = load_lifecycle_config(path)
    assert config.checkpoint_interval_seconds == 5
    assert config.max_backups == 3
    assert config.log_dir == "logs"


def test_unknown_keys_ignored(tmp_path, caplog):
    path = tmp_path / "lifecycle_config.json"
    path.write_text(json.dumps({"storage_path": "/elsewhere", "max_backups": 4}))
    config = load_lifecycle_config(path)
    assert config.max_backups == 4
    assert not hasattr(config, "storage_path")
    assert "storage_path" in caplog.text


@pytest.mark.parametrize(
    "data",
    [{"checkpoint_interval_seconds": 0}, {"max_backups": 0}],
)
def test_invalid_values_rejected(tmp_path, data):
    path = tmp_path / "lifecycle_config.json"
    path.write_text(json.dumps(data))
    with pytest.raises(ValueError):
        load_lifecycle_config(path)
