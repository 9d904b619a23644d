"""Invocation of the external version-control tools.

Every command runs with its working directory passed explicitly; nothing in this
module changes the process-wide current directory. Standard output and standard
error are merged into one stream so failures carry the text exactly as the tool
printed it.
"""

import asyncio
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)


class CommandError(RuntimeError):
    """An external command could not be started or exited non-zero.

    Attributes:
        args_list (list[str]): The full command line.
        returncode (int | None): Exit status, or None if the process never ran.
        output (str): Combined stdout/stderr text, verbatim.
    """

    def __init__(self, args_list: list[str], returncode: int | None, output: str):
        self.args_list = args_list
        self.returncode = returncode
        self.output = output
        if returncode is None:
            summary = f"{args_list[0]} could not be started"
        else:
            summary = f"'{' '.join(args_list)}' exited with status {returncode}"
        super().__init__(f"{summary}: {output.strip()}" if output.strip() else summary)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a finished external command."""

    args: list[str]
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


async def _terminate(process: asyncio.subprocess.Process) -> None:
    """Stops a child that outlived its caller, escalating to SIGKILL."""
    if process.returncode is not None:
        return
    try:
        process.terminate()
        try:
            await asyncio.wait_for(process.wait(), timeout=2.0)
        except asyncio.TimeoutError:
            logger.debug(f"Process {process.pid} ignored SIGTERM, killing")
            process.kill()
            await process.wait()
    except ProcessLookupError:
        pass


async def run_command(
    args: list[str],
    cwd: Path,
    *,
    check: bool = True,
    timeout: float | None = None,
) -> CommandResult:
    """Runs a command without blocking the event loop.

    Args:
        args (list[str]): Command and arguments, e.g. ["git", "status"].
        cwd (Path): The directory the command runs in.
        check (bool, optional): Raise on non-zero exit. Defaults to True.
        timeout (float | None, optional): Seconds before the child is terminated.

    Returns:
        CommandResult: Exit status and combined output.

    Raises:
        CommandError: If the tool is missing, times out, or (with check) fails.
        asyncio.CancelledError: If the awaiting task is cancelled. The child is
            terminated before the cancellation propagates.
    """
    logger.debug(f"Running in {cwd}: {' '.join(args)}")
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            cwd=cwd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except (FileNotFoundError, NotADirectoryError, PermissionError) as e:
        raise CommandError(args, None, str(e)) from e

    try:
        if timeout is not None:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
        else:
            stdout, _ = await process.communicate()
    except asyncio.TimeoutError as e:
        await _terminate(process)
        raise CommandError(args, None, f"timed out after {timeout}s") from e
    except asyncio.CancelledError:
        await _terminate(process)
        raise

    output = stdout.decode("utf-8", errors="replace") if stdout else ""
    result = CommandResult(args=args, returncode=process.returncode, output=output)
    if check and not result.ok:
        logger.warning(f"Command failed ({result.returncode}): {' '.join(args)}")
        raise CommandError(args, result.returncode, output)
    return result


def run_command_sync(
    args: list[str], cwd: Path, timeout: float | None = None
) -> str:
    """Blocking counterpart of `run_command` for quick read-only queries.

    Returns:
        str: The stripped combined output.

    Raises:
        CommandError: If the tool is missing, times out, or exits non-zero.
    """
    logger.debug(f"Running in {cwd}: {' '.join(args)}")
    try:
        res = subprocess.run(
            args,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=timeout,
            check=True,
        )
        return res.stdout.strip()
    except subprocess.CalledProcessError as e:
        raise CommandError(args, e.returncode, e.stdout or "") from e
    except subprocess.TimeoutExpired as e:
        raise CommandError(args, None, f"timed out after {timeout}s") from e
    except OSError as e:
        raise CommandError(args, None, str(e)) from e
