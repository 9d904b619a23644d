"""Shared fixtures for the storesync test suite."""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from storesync.config import BackendSettings


@pytest.fixture
def make_settings(tmp_path: Path) -> Callable[..., BackendSettings]:
    """Builds BackendSettings rooted in a temporary storage directory."""

    def _make(**overrides: Any) -> BackendSettings:
        values: dict[str, Any] = {
            "kind": "git",
            "storage_path": tmp_path,
            "default_branch": "main",
            "remote_enabled": False,
            "remote_name": "origin",
        }
        values.update(overrides)
        return BackendSettings(**values)

    return _make


@pytest.fixture
def isolated_vcs_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolates git and jj from the developer's own configuration.

    Returns:
        Path: A fresh storage directory next to the fake home.
    """
    home = tmp_path / "home"
    home.mkdir()
    jj_config = home / "jj.toml"
    jj_config.write_text("")

    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", "/dev/null")
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    monkeypatch.setenv("JJ_CONFIG", str(jj_config))
    monkeypatch.setenv("JJ_USER", "Test User")
    monkeypatch.setenv("JJ_EMAIL", "test@example.com")

    storage = tmp_path / "storage"
    storage.mkdir()
    return storage
