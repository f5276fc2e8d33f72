"""Unit tests for configuration loading and dependency wiring."""

from __future__ import annotations

import json

import pytest

from chart_registry.core import dependencies
from chart_registry.core.dependencies import DATA_ROOT_ENV_VAR, load_config
from chart_registry.storage.file_backend import FileStorageBackend


def test_load_config_writes_defaults(tmp_path) -> None:
    """A missing registry.json should be created with defaults."""
    config = load_config(tmp_path)

    persisted = json.loads((tmp_path / "registry.json").read_text(encoding="utf-8"))
    assert config.request_timeout_seconds == 30.0
    assert persisted["log_level"] == "INFO"


def test_load_config_keeps_existing_values(tmp_path) -> None:
    """Known fields in registry.json should override defaults."""
    (tmp_path / "registry.json").write_text(json.dumps({"request_timeout_seconds": 5}), encoding="utf-8")

    config = load_config(tmp_path)

    assert config.request_timeout_seconds == 5


@pytest.mark.parametrize("content", ["{not json", json.dumps({"request_timeout_seconds": -1})])
def test_load_config_falls_back_on_invalid_file(tmp_path, content: str) -> None:
    """Unparseable or invalid configuration should be replaced by defaults."""
    (tmp_path / "registry.json").write_text(content, encoding="utf-8")

    config = load_config(tmp_path)

    assert config.request_timeout_seconds == 30.0


def test_backend_uses_data_dir_from_environment(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    """The storage backend should live under the configured data directory."""
    monkeypatch.setenv(DATA_ROOT_ENV_VAR, str(tmp_path / "registry-data"))
    for name in ("_config", "_codec", "_backend", "_service"):
        monkeypatch.setattr(dependencies, name, None)

    backend = dependencies.get_backend()

    assert isinstance(backend, FileStorageBackend)
    assert (tmp_path / "registry-data" / "spaces").is_dir()
