import logging
from pathlib import Path

from .constants import APP_NAME
from .process import CommandError, CommandResult, run_command, run_command_sync

logger = logging.getLogger(APP_NAME)


class GitRepo:
    """A wrapper around the Git command-line interface for a storage directory.

    Mutating operations are coroutines so a UI loop stays responsive while they run;
    read-only queries are plain methods. Every command runs with `cwd` set to the
    storage directory.

    Attributes:
        path (Path): The file system path to the repository root.
        timeout (float | None): Deadline in seconds applied to each command.
    """

    def __init__(self, path: Path, timeout: float | None = None):
        """Initializes the GitRepo instance.

        Args:
            path (Path): The storage directory. It need not be a repository yet.
            timeout (float | None, optional): Per-command deadline. Defaults to None.
        """
        self.path = path
        self.timeout = timeout

    async def _arun(self, args: list[str], check: bool = True) -> CommandResult:
        """Executes a Git command asynchronously within the repository context.

        Args:
            args (list[str]): A list of arguments to pass to the git command.
            check (bool, optional): Raise on non-zero exit. Defaults to True.

        Returns:
            CommandResult: Exit status and combined output.

        Raises:
            CommandError: If git cannot be started, or exits non-zero with check.
        """
        return await run_command(
            ["git", *args], self.path, check=check, timeout=self.timeout
        )

    def _run(self, args: list[str]) -> str:
        """Executes a blocking Git query and returns its stripped output."""
        return run_command_sync(["git", *args], self.path, timeout=self.timeout)

    def is_repo(self) -> bool:
        """Returns True if the storage directory already holds a .git directory."""
        return (self.path / ".git").exists()

    async def init(self, branch: str) -> None:
        """Creates the repository with `branch` as its initial branch.

        Args:
            branch (str): The name of the default branch.
        """
        await self._arun(["init", "--initial-branch", branch])

    async def has_remote(self, name: str) -> bool:
        """Checks whether a remote with the given name is configured.

        Args:
            name (str): The remote name (e.g., 'origin').

        Returns:
            bool: True if `git remote` lists it.
        """
        res = await self._arun(["remote"])
        return name in res.output.splitlines()

    async def remote_add(self, name: str, url: str) -> None:
        """Registers a remote.

        Args:
            name (str): The remote name.
            url (str): The remote location.
        """
        await self._arun(["remote", "add", name, url])

    async def add(self, *files: str) -> None:
        """Stages exactly the given paths.

        Args:
            *files (str): Paths relative to the repository root.
        """
        await self._arun(["add", "--", *files])

    async def has_staged_changes(self) -> bool:
        """Probes the index against HEAD.

        `git diff --cached --quiet` exits 0 when nothing is staged and 1 otherwise.

        Returns:
            bool: True if a commit would record something.

        Raises:
            CommandError: If git reports an actual error (exit status above 1).
        """
        res = await self._arun(["diff", "--cached", "--quiet"], check=False)
        if res.returncode > 1:
            raise CommandError(res.args, res.returncode, res.output)
        logger.debug(f"Staged changes in {self.path.name}: {res.returncode == 1}")
        return res.returncode != 0

    async def commit(self, message: str) -> None:
        """Creates a new commit from the index.

        Args:
            message (str): The commit message.
        """
        await self._arun(["commit", "--message", message])

    async def pull_rebase(self) -> None:
        """Fetches the upstream branch and rebases local commits onto it."""
        await self._arun(["pull", "--rebase"])

    async def push(self, remote: str, branch: str) -> None:
        """Pushes a branch and records it as the upstream.

        Args:
            remote (str): The remote name.
            branch (str): The branch to push.
        """
        await self._arun(["push", "--set-upstream", remote, branch])

    def config_get(self, key: str) -> str:
        """Reads a configuration value such as 'user.name'.

        Args:
            key (str): The dotted configuration key.

        Returns:
            str: The value with surrounding whitespace removed.
        """
        return self._run(["config", key])

    def log_authors(self) -> list[str]:
        """Lists the author of every commit reachable from HEAD.

        Returns:
            list[str]: One 'Name email' line per commit, duplicates included.
        """
        output = self._run(["log", "--format=%aN %aE"])
        return output.splitlines() if output else []

    def commit_count(self) -> int:
        """Counts the commits reachable from HEAD."""
        return int(self._run(["rev-list", "--count", "HEAD"]))
