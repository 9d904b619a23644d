"""Version-control strategies for the storage directory.

Both backends offer the same capabilities (initialize, commit, synchronize and the
two identity queries) and differ only in the commands behind them. The coroutine
methods raise on failure; `events.execute` turns that into an outcome.
"""

import logging
from collections.abc import Iterable

from .config import BackendSettings
from .constants import APP_NAME, INITIAL_COMMIT_MESSAGE, MARKER_NAME
from .events import NotInitializedError, Phase, phase
from .git_wrapper import GitRepo
from .jj_wrapper import JJRepo
from .marker import Marker

logger = logging.getLogger(APP_NAME)


def add_angle_brackets_to_email(value: str) -> str:
    """Wraps the email address at the end of `value` in angle brackets.

    The email is the last word, found by the first '@'. Strings that are already
    wrapped, or that contain no '@', are returned unchanged.

    Example:
        >>> add_angle_brackets_to_email("Jane Doe jane@example.com")
        'Jane Doe <jane@example.com>'
    """
    at_index = value.find("@")
    if at_index == -1:
        return value

    start = value.rfind(" ", 0, at_index) + 1
    email = value[start:]
    if email.startswith("<") and email.endswith(">"):
        return value
    return f"{value[:start]}<{email}>"


def unique_non_empty(lines: Iterable[str]) -> list[str]:
    """Trims, drops blanks and deduplicates author lines, bracketing emails.

    The result is sorted so callers can compare it without caring about the
    order in which the tool printed authors.
    """
    unique = {line.strip() for line in lines if line.strip()}
    return sorted({add_angle_brackets_to_email(line) for line in unique})


class VcsBackend:
    """Base class defining the interface every version-control backend implements.

    Attributes:
        settings (BackendSettings): The resolved configuration of this backend.
        marker (Marker): The initialization sentinel in the storage directory.
    """

    def __init__(self, settings: BackendSettings):
        self.settings = settings
        self.marker = Marker(settings.storage_path)

    async def initialize(self) -> None:
        """Creates the repository and records the marker. No-op if already done."""
        raise NotImplementedError

    async def commit(self, message: str, *files: str) -> None:
        """Records pending changes, then reconciles with the remote if enabled."""
        raise NotImplementedError

    async def synchronize(self) -> None:
        """Brings remote history into the local repository.

        Raises:
            NotInitializedError: If the marker is missing.
        """
        raise NotImplementedError

    async def has_pending_change(self) -> bool:
        """Returns True if committing now would record something."""
        raise NotImplementedError

    def current_user(self) -> str:
        """Returns the configured identity as 'Name <email>'."""
        raise NotImplementedError

    def contributors(self) -> list[str]:
        """Returns every distinct author in history as 'Name <email>'."""
        raise NotImplementedError

    def _require_marker(self) -> None:
        if not self.marker.exists():
            raise NotInitializedError(
                f"{self.settings.storage_path} has no {MARKER_NAME} marker"
            )

    @staticmethod
    def _identity(name: str, email: str) -> str:
        return f"{name.strip()} {add_angle_brackets_to_email(email.strip())}"


class GitBackend(VcsBackend):
    """Staged-branch backend: stages files explicitly and pushes a branch."""

    def __init__(self, settings: BackendSettings):
        super().__init__(settings)
        self.repo = GitRepo(settings.storage_path, timeout=settings.timeout)

    async def initialize(self) -> None:
        """Creates the repository on the default branch and commits the marker.

        The marker is removed again if its commit fails, so an existing marker
        always has a matching history entry.
        """
        if self.marker.exists():
            logger.debug("Marker present, skipping initialization.")
            return

        s = self.settings
        with phase(Phase.INIT):
            await self.repo.init(s.default_branch)
            if s.remote_enabled and s.remote_url:
                if not await self.repo.has_remote(s.remote_name):
                    await self.repo.remote_add(s.remote_name, s.remote_url)

        self.marker.create()
        try:
            with phase(Phase.COMMIT):
                await self._record(INITIAL_COMMIT_MESSAGE, MARKER_NAME)
        except BaseException:
            self.marker.remove()
            raise

        if s.remote_enabled:
            with phase(Phase.PUSH):
                await self.repo.push(s.remote_name, s.default_branch)

        logger.info(f"Initialized git repository in {s.storage_path}")

    async def commit(self, message: str, *files: str) -> None:
        """Stages and commits `files`, then pulls with rebase and pushes.

        Args:
            message (str): The commit message.
            *files (str): Paths to stage, relative to the storage directory.
        """
        with phase(Phase.COMMIT):
            await self._record(message, *files)

        if self.settings.remote_enabled:
            await self._reconcile()

    async def synchronize(self) -> None:
        """Pulls with rebase."""
        self._require_marker()
        with phase(Phase.PULL):
            await self.repo.pull_rebase()

    async def has_pending_change(self) -> bool:
        return await self.repo.has_staged_changes()

    def current_user(self) -> str:
        return self._identity(
            self.repo.config_get("user.name"), self.repo.config_get("user.email")
        )

    def contributors(self) -> list[str]:
        return unique_non_empty(self.repo.log_authors())

    async def _record(self, message: str, *files: str) -> None:
        await self.repo.add(*files)
        if not await self.has_pending_change():
            logger.info(f"Nothing to commit for {', '.join(files)}.")
            return
        await self.repo.commit(message)

    async def _reconcile(self) -> None:
        s = self.settings
        with phase(Phase.PULL):
            await self.repo.pull_rebase()
        with phase(Phase.PUSH):
            await self.repo.push(s.remote_name, s.default_branch)


class JJBackend(VcsBackend):
    """Change-based backend: commits the working copy and pushes a bookmark."""

    def __init__(self, settings: BackendSettings):
        super().__init__(settings)
        self.repo = JJRepo(settings.storage_path, timeout=settings.timeout)

    @property
    def trunk(self) -> str:
        """The remote bookmark local work is rebased onto, e.g. 'main@origin'."""
        return f"{self.settings.default_branch}@{self.settings.remote_name}"

    async def initialize(self) -> None:
        """Creates or clones the repository and commits the marker.

        With remote sync and a URL the repository is cloned; if the cloned history
        already carries the marker there is nothing left to do.
        """
        if self.marker.exists():
            logger.debug("Marker present, skipping initialization.")
            return

        s = self.settings
        with phase(Phase.INIT):
            if s.remote_enabled and s.remote_url:
                if not self.repo.is_repo():
                    await self.repo.git_clone(s.remote_url, colocate=s.colocate)
            elif not self.repo.is_repo():
                await self.repo.git_init(colocate=s.colocate)

        if self.marker.exists():
            logger.info(f"Cloned an initialized repository into {s.storage_path}")
            return

        self.marker.create()
        try:
            with phase(Phase.COMMIT):
                await self._record(INITIAL_COMMIT_MESSAGE)
        except BaseException:
            self.marker.remove()
            raise

        if s.remote_enabled:
            await self._publish()

        logger.info(f"Initialized jj repository in {s.storage_path}")

    async def commit(self, message: str, *files: str) -> None:
        """Rebases onto trunk, commits the working copy, then pushes the bookmark.

        jj snapshots the whole working copy, so `files` is accepted for interface
        parity only.

        Args:
            message (str): The change description.
            *files (str): Ignored.
        """
        if self.settings.remote_enabled:
            await self._fetch_and_rebase()

        with phase(Phase.COMMIT):
            await self._record(message)

        if self.settings.remote_enabled:
            await self._publish()

    async def synchronize(self) -> None:
        """Fetches and rebases the working copy onto trunk."""
        self._require_marker()
        await self._fetch_and_rebase()

    async def has_pending_change(self) -> bool:
        files, _, _ = await self.repo.diff_stat("@-", "@")
        return files > 0

    def current_user(self) -> str:
        return self._identity(
            self.repo.config_get("user.name"), self.repo.config_get("user.email")
        )

    def contributors(self) -> list[str]:
        return unique_non_empty(self.repo.log_authors())

    async def _record(self, message: str) -> None:
        if not await self.has_pending_change():
            logger.info("Nothing to commit in working copy.")
            return
        await self.repo.commit(message)

    async def _fetch_and_rebase(self) -> None:
        with phase(Phase.PULL):
            await self.repo.git_fetch(self.settings.remote_name)
            await self.repo.rebase(self.trunk)

    async def _publish(self) -> None:
        s = self.settings
        with phase(Phase.PUSH):
            await self.repo.bookmark_set(s.default_branch, "@-")
            await self.repo.git_push(s.remote_name, s.default_branch)
