"""Terminal outcomes of sync operations and the executor that produces them.

A sync operation is a coroutine. `execute` awaits it and turns whatever happens
into exactly one of `Done`, `Error` or `NotInitialized`, so a UI loop only ever
has to react to a single value.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum

from .constants import APP_NAME
from .process import CommandError

logger = logging.getLogger(APP_NAME)


class Operation(str, Enum):
    """The three operations a backend performs."""

    INITIALIZE = "initialize"
    COMMIT = "commit"
    SYNCHRONIZE = "synchronize"


class Phase(str, Enum):
    """The step of an operation in which a failure happened."""

    INIT = "init"
    COMMIT = "commit"
    PULL = "pull"
    PUSH = "push"


class SyncError(RuntimeError):
    """A command failure tagged with the phase it interrupted.

    Attributes:
        phase (Phase): The step that failed.
        output (str): The captured text of the failing command.
    """

    def __init__(self, phase: Phase, output: str, message: str):
        self.phase = phase
        self.output = output
        super().__init__(message)


class NotInitializedError(RuntimeError):
    """Raised when synchronizing a storage directory that lacks the marker."""


@dataclass(frozen=True)
class Done:
    """The operation finished successfully."""


@dataclass(frozen=True)
class Error:
    """The operation failed.

    Attributes:
        diagnostic (str): Output of the failing tool, verbatim.
        cause (BaseException): The exception that ended the operation.
        phase (Phase | None): The failing step, if known.
    """

    diagnostic: str
    cause: BaseException
    phase: Phase | None = None


@dataclass(frozen=True)
class NotInitialized:
    """Synchronize found no marker and did not touch the repository."""

    message: str = (
        "trying to pull but local repo is not initialized.\n"
        "Please disable the remote and try again"
    )


Outcome = Done | Error | NotInitialized


@contextmanager
def phase(name: Phase) -> Iterator[None]:
    """Tags any command failure raised inside the block with `name`."""
    try:
        yield
    except CommandError as e:
        raise SyncError(name, e.output, str(e)) from e


async def execute(operation: Operation, work: Awaitable[None]) -> Outcome:
    """Awaits a single operation and converts its result into one outcome.

    Args:
        operation (Operation): Which operation `work` performs.
        work (Awaitable[None]): The operation body.

    Returns:
        Outcome: `Done`, `Error`, or (for synchronize only) `NotInitialized`.
    """
    try:
        await work
    except NotInitializedError as e:
        if operation is Operation.SYNCHRONIZE:
            logger.info("Synchronize skipped: repository is not initialized.")
            return NotInitialized()
        logger.error(f"{operation.value} failed: {e}")
        return Error(diagnostic=str(e), cause=e)
    except SyncError as e:
        logger.error(f"{operation.value} failed during {e.phase.value}: {e}")
        return Error(diagnostic=e.output or str(e), cause=e, phase=e.phase)
    except CommandError as e:
        logger.error(f"{operation.value} failed: {e}")
        return Error(diagnostic=e.output or str(e), cause=e)
    except OSError as e:
        logger.error(f"{operation.value} failed: {e}")
        return Error(diagnostic=str(e), cause=e)
    except Exception as e:
        logger.exception(f"Unexpected error during {operation.value}")
        return Error(diagnostic=str(e), cause=e)

    logger.info(f"{operation.value} done.")
    return Done()


def launch(
    operation: Operation,
    work: Awaitable[None],
    on_outcome: Callable[[Outcome], None],
) -> "asyncio.Task[Outcome]":
    """Starts an operation in the background and reports its outcome once.

    The caller keeps running its loop. `on_outcome` is invoked exactly once
    when the operation ends, unless the task is cancelled first.

    Args:
        operation (Operation): Which operation `work` performs.
        work (Awaitable[None]): The operation body.
        on_outcome (Callable[[Outcome], None]): Receives the terminal outcome.

    Returns:
        asyncio.Task[Outcome]: The running task, for cancellation.
    """
    task = asyncio.ensure_future(execute(operation, work))

    def _deliver(finished: "asyncio.Task[Outcome]") -> None:
        if finished.cancelled():
            logger.info(f"{operation.value} cancelled.")
            return
        on_outcome(finished.result())

    task.add_done_callback(_deliver)
    return task
