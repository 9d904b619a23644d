"""Tests for external command invocation."""

import asyncio
import sys
from pathlib import Path

import pytest

from storesync.process import CommandError, run_command, run_command_sync


def _python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


@pytest.mark.asyncio
async def test_run_command_pins_working_directory(tmp_path: Path) -> None:
    """Verifies that commands run in the given directory, not the ambient one."""
    result = await run_command(_python("import os; print(os.getcwd())"), tmp_path)

    assert result.ok
    assert Path(result.output.strip()).resolve() == tmp_path.resolve()


@pytest.mark.asyncio
async def test_run_command_merges_stdout_and_stderr(tmp_path: Path) -> None:
    """Verifies that both streams are captured into one text."""
    code = "import sys; print('out'); sys.stdout.flush(); print('err', file=sys.stderr)"
    result = await run_command(_python(code), tmp_path)

    assert "out" in result.output
    assert "err" in result.output


@pytest.mark.asyncio
async def test_run_command_failure_carries_output(tmp_path: Path) -> None:
    """Verifies that non-zero exits raise with the verbatim diagnostic text."""
    code = "import sys; print('fatal: no upstream', file=sys.stderr); sys.exit(3)"

    with pytest.raises(CommandError) as excinfo:
        await run_command(_python(code), tmp_path)

    assert excinfo.value.returncode == 3
    assert "fatal: no upstream" in excinfo.value.output
    assert "exited with status 3" in str(excinfo.value)


@pytest.mark.asyncio
async def test_run_command_without_check_returns_status(tmp_path: Path) -> None:
    """Verifies that check=False reports the exit status instead of raising."""
    result = await run_command(_python("import sys; sys.exit(1)"), tmp_path, check=False)

    assert result.returncode == 1
    assert not result.ok


@pytest.mark.asyncio
async def test_run_command_missing_tool(tmp_path: Path) -> None:
    """Verifies that an uninstalled executable is a command failure."""
    with pytest.raises(CommandError) as excinfo:
        await run_command(["definitely-not-a-vcs-tool"], tmp_path)

    assert excinfo.value.returncode is None
    assert "could not be started" in str(excinfo.value)


@pytest.mark.asyncio
async def test_run_command_timeout(tmp_path: Path) -> None:
    """Verifies that a deadline terminates the child and raises."""
    with pytest.raises(CommandError, match="timed out"):
        await run_command(_python("import time; time.sleep(30)"), tmp_path, timeout=0.2)


@pytest.mark.asyncio
async def test_run_command_cancellation_propagates(tmp_path: Path) -> None:
    """Verifies that cancelling the awaiting task stops the command."""
    task = asyncio.ensure_future(
        run_command(_python("import time; time.sleep(30)"), tmp_path)
    )
    await asyncio.sleep(0.2)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task


def test_run_command_sync_strips_output(tmp_path: Path) -> None:
    """Verifies the blocking variant used by identity queries."""
    assert run_command_sync(_python("print('  Test User  ')"), tmp_path) == "Test User"


def test_run_command_sync_failure(tmp_path: Path) -> None:
    """Verifies that the blocking variant raises with captured output."""
    code = "import sys; print('no such key', file=sys.stderr); sys.exit(1)"

    with pytest.raises(CommandError) as excinfo:
        run_command_sync(_python(code), tmp_path)

    assert "no such key" in excinfo.value.output
