"""End-to-end scenarios against real git and jj executables.

Each test is skipped when the corresponding tool is not installed.
"""

import shutil
import subprocess
from collections.abc import Callable
from pathlib import Path

import pytest

from storesync.config import BackendSettings
from storesync.events import Done, NotInitialized
from storesync.selector import SyncEngine

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
requires_jj = pytest.mark.skipif(shutil.which("jj") is None, reason="jj not installed")


def _git_log_count(path: Path) -> int:
    out = subprocess.run(
        ["git", "rev-list", "--count", "HEAD"],
        cwd=path, capture_output=True, text=True, check=True,
    )
    return int(out.stdout.strip())


@pytest.fixture
def engine_for(
    isolated_vcs_env: Path, make_settings: Callable[..., BackendSettings]
) -> Callable[..., SyncEngine]:
    def _make(kind: str, **overrides: object) -> SyncEngine:
        return SyncEngine.from_settings(
            make_settings(kind=kind, storage_path=isolated_vcs_env, **overrides)
        )

    return _make


@requires_git
@pytest.mark.asyncio
async def test_git_initialize_then_commit(engine_for) -> None:
    """Starting empty, init plus one commit gives exactly two history entries."""
    engine = engine_for("git")
    storage = engine.settings.storage_path

    assert await engine.initialize() == Done()
    (storage / "hello.txt").write_text("hello\n")
    assert await engine.commit("add hello", "hello.txt") == Done()

    assert _git_log_count(storage) == 2
    assert (storage / "INIT").stat().st_size == 0
    assert engine.backend.repo.commit_count() == 2


@requires_git
@pytest.mark.asyncio
async def test_git_initialize_is_idempotent(engine_for) -> None:
    """A second initialize leaves the history untouched."""
    engine = engine_for("git")
    storage = engine.settings.storage_path

    assert await engine.initialize() == Done()
    assert await engine.initialize() == Done()

    assert _git_log_count(storage) == 1


@requires_git
@pytest.mark.asyncio
async def test_git_commit_unchanged_file_adds_no_entry(engine_for) -> None:
    """Committing a file without modifications never creates an empty commit."""
    engine = engine_for("git")
    storage = engine.settings.storage_path

    await engine.initialize()
    (storage / "task.json").write_text("{}")
    await engine.commit("add task", "task.json")
    assert await engine.commit("add task again", "task.json") == Done()

    assert _git_log_count(storage) == 2


@requires_git
@pytest.mark.asyncio
async def test_git_synchronize_before_initialize(engine_for) -> None:
    """Synchronize on a fresh directory reports NotInitialized and creates nothing."""
    engine = engine_for("git", remote_enabled=True)
    storage = engine.settings.storage_path

    assert isinstance(await engine.synchronize(), NotInitialized)
    assert not (storage / ".git").exists()


@requires_git
@pytest.mark.asyncio
async def test_git_identity(engine_for) -> None:
    """The configured user appears among the contributors."""
    engine = engine_for("git")
    storage = engine.settings.storage_path
    await engine.initialize()
    subprocess.run(["git", "config", "user.name", "Test User"], cwd=storage, check=True)
    subprocess.run(
        ["git", "config", "user.email", "test@example.com"], cwd=storage, check=True
    )

    assert engine.current_user() == "Test User <test@example.com>"
    assert engine.contributors() == ["Test User <test@example.com>"]


@requires_git
@pytest.mark.asyncio
async def test_git_commit_and_push_to_bare_remote(engine_for, tmp_path: Path) -> None:
    """With a remote, commit pulls and pushes so the remote receives the entry."""
    remote = tmp_path / "remote.git"
    subprocess.run(
        ["git", "init", "--bare", "--initial-branch", "main", str(remote)],
        check=True, capture_output=True,
    )
    engine = engine_for("git", remote_enabled=True, remote_url=str(remote))
    storage = engine.settings.storage_path

    assert await engine.initialize() == Done()
    (storage / "hello.txt").write_text("hello\n")
    assert await engine.commit("add hello", "hello.txt") == Done()
    assert await engine.synchronize() == Done()

    assert _git_log_count(remote) == 2


@requires_jj
@pytest.mark.asyncio
async def test_jj_initialize_then_commit_twice(engine_for) -> None:
    """A repeated commit without file changes keeps the change count."""
    engine = engine_for("jj")
    storage = engine.settings.storage_path

    assert await engine.initialize() == Done()
    assert engine.backend.repo.change_count() == 1

    (storage / "hello.txt").write_text("hello\n")
    assert await engine.commit("add hello") == Done()
    assert engine.backend.repo.change_count() == 2

    assert await engine.commit("add hello again") == Done()
    assert engine.backend.repo.change_count() == 2


@requires_jj
@pytest.mark.asyncio
async def test_jj_synchronize_before_initialize(engine_for) -> None:
    """Synchronize on a fresh directory reports NotInitialized and creates nothing."""
    engine = engine_for("jj", remote_enabled=True)
    storage = engine.settings.storage_path

    assert isinstance(await engine.synchronize(), NotInitialized)
    assert not (storage / ".jj").exists()
