import asyncio
import logging
import shutil
from collections.abc import Callable

from .backends import GitBackend, JJBackend, VcsBackend
from .config import BackendSettings, ConfigurationError
from .constants import APP_NAME, BACKEND_GIT, BACKEND_JJ, SUPPORTED_BACKENDS
from .events import Done, NotInitialized, Operation, Outcome, execute, launch

logger = logging.getLogger(APP_NAME)

_BACKENDS: dict[str, type[VcsBackend]] = {
    BACKEND_GIT: GitBackend,
    BACKEND_JJ: JJBackend,
}


def check_tools(kind: str) -> None:
    """Verifies that the configured backend's executable is installed.

    Raises:
        ConfigurationError: If neither tool, or not the selected one, is on PATH.
    """
    available = [name for name in SUPPORTED_BACKENDS if shutil.which(name)]
    if not available:
        raise ConfigurationError(
            f"{APP_NAME} requires either 'git' or 'jj' to be installed"
        )
    if kind in SUPPORTED_BACKENDS and kind not in available:
        raise ConfigurationError(
            f"vcs.backend is '{kind}' but '{kind}' was not found on PATH"
        )


def resolve_backend(settings: BackendSettings) -> VcsBackend:
    """Builds the one backend instance selected by `settings.kind`.

    Raises:
        ConfigurationError: If the backend kind is not supported.
    """
    try:
        backend_cls = _BACKENDS[settings.kind]
    except KeyError:
        raise ConfigurationError(
            f"Unsupported vcs.backend '{settings.kind}'. "
            f"Expected one of: {', '.join(SUPPORTED_BACKENDS)}"
        ) from None
    logger.debug(f"Using {settings.kind} backend for {settings.storage_path}")
    return backend_cls(settings)


class SyncEngine:
    """Entry point the rest of the application talks to.

    Delegates every call unchanged to the backend bound at construction. The
    asynchronous operations never raise for tool failures; they return one
    `Outcome`. Callers must not start an operation while another is in flight.

    Attributes:
        backend (VcsBackend): The bound backend.
    """

    def __init__(self, backend: VcsBackend):
        self.backend = backend

    @classmethod
    def from_settings(cls, settings: BackendSettings) -> "SyncEngine":
        return cls(resolve_backend(settings))

    @property
    def settings(self) -> BackendSettings:
        return self.backend.settings

    async def initialize(self) -> Outcome:
        return await execute(Operation.INITIALIZE, self.backend.initialize())

    async def commit(self, message: str, *files: str) -> Outcome:
        return await execute(Operation.COMMIT, self.backend.commit(message, *files))

    async def synchronize(self) -> Outcome:
        return await execute(Operation.SYNCHRONIZE, self.backend.synchronize())

    def current_user(self) -> str:
        return self.backend.current_user()

    def contributors(self) -> list[str]:
        return self.backend.contributors()

    def launch(
        self,
        operation: Operation,
        on_outcome: Callable[[Outcome], None],
        *args: str,
    ) -> "asyncio.Task[Outcome]":
        """Starts an operation without waiting for it.

        Args:
            operation (Operation): Which operation to run.
            on_outcome (Callable[[Outcome], None]): Called once with the result.
            *args (str): For commit, the message followed by the files.

        Returns:
            asyncio.Task[Outcome]: The running task.
        """
        if operation is Operation.INITIALIZE:
            work = self.backend.initialize()
        elif operation is Operation.COMMIT:
            message, *files = args
            work = self.backend.commit(message, *files)
        else:
            work = self.backend.synchronize()
        return launch(operation, work, on_outcome)

    async def startup(self) -> Outcome:
        """Initializes the repository, then pulls if remote sync is enabled.

        Returns:
            Outcome: The first non-Done outcome, or Done.
        """
        outcome = await self.initialize()
        if not isinstance(outcome, Done) or not self.settings.remote_enabled:
            return outcome
        outcome = await self.synchronize()
        if isinstance(outcome, NotInitialized):
            logger.warning(outcome.message)
        return outcome
