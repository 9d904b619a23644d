import logging
import re
from pathlib import Path

from .constants import APP_NAME
from .process import CommandResult, run_command, run_command_sync

logger = logging.getLogger(APP_NAME)

AUTHOR_TEMPLATE = 'author.name() ++ " " ++ author.email() ++ "\\n"'
"""str: jj log template printing one 'Name email' line per change."""


def parse_stat_summary(output: str) -> tuple[int, int, int]:
    """Extracts (files, insertions, deletions) from a diff --stat summary line.

    Returns (0, 0, 0) for empty output, which older jj releases print for an
    empty diff instead of a zero summary.
    """
    if not output.strip():
        return 0, 0, 0

    files_match = re.search(r"(\d+)\s+files?\s+changed", output)
    insertions_match = re.search(r"(\d+)\s+insertion", output)
    deletions_match = re.search(r"(\d+)\s+deletion", output)

    files = int(files_match.group(1)) if files_match else 0
    insertions = int(insertions_match.group(1)) if insertions_match else 0
    deletions = int(deletions_match.group(1)) if deletions_match else 0

    return files, insertions, deletions


class JJRepo:
    """A wrapper around the Jujutsu (jj) command-line interface.

    jj has no staging area: the working copy is itself a change (`@`) that is
    snapshotted by every command, and `jj commit` seals it and starts a new empty
    one on top. Bookmarks do not follow new commits and must be moved explicitly.

    Attributes:
        path (Path): The storage directory.
        timeout (float | None): Deadline in seconds applied to each command.
    """

    def __init__(self, path: Path, timeout: float | None = None):
        self.path = path
        self.timeout = timeout

    async def _arun(self, args: list[str]) -> CommandResult:
        """Executes a jj command asynchronously inside the storage directory.

        Raises:
            CommandError: If jj cannot be started or exits non-zero.
        """
        return await run_command(["jj", *args], self.path, timeout=self.timeout)

    def _run(self, args: list[str]) -> str:
        """Executes a blocking jj query and returns its stripped output."""
        return run_command_sync(["jj", *args], self.path, timeout=self.timeout)

    def is_repo(self) -> bool:
        """Returns True if the storage directory already holds a .jj directory."""
        return (self.path / ".jj").exists()

    async def git_init(self, colocate: bool = False) -> None:
        """Creates a git-backed jj repository in place.

        Args:
            colocate (bool, optional): Also expose a regular .git worktree.
        """
        cmd = ["git", "init"]
        if colocate:
            cmd.append("--colocate")
        await self._arun(cmd)

    async def git_clone(self, url: str, colocate: bool = False) -> None:
        """Clones `url` into the (empty) storage directory.

        Args:
            url (str): The remote location.
            colocate (bool, optional): Also expose a regular .git worktree.
        """
        cmd = ["git", "clone"]
        if colocate:
            cmd.append("--colocate")
        cmd.extend([url, str(self.path)])
        await self._arun(cmd)

    async def diff_stat(self, source: str = "@-", target: str = "@") -> tuple[int, int, int]:
        """Summarizes the difference between two revisions.

        Args:
            source (str, optional): The prior revision. Defaults to '@-'.
            target (str, optional): The current revision. Defaults to '@'.

        Returns:
            tuple[int, int, int]: (files_changed, insertions, deletions).
        """
        res = await self._arun(["diff", "--stat", "--from", source, "--to", target])
        stat = parse_stat_summary(res.output)
        logger.debug(f"diff {source}..{target} in {self.path.name}: {stat}")
        return stat

    async def commit(self, message: str) -> None:
        """Seals the working-copy change with `message`.

        Args:
            message (str): The description of the change.
        """
        await self._arun(["commit", "--message", message])

    async def git_fetch(self, remote: str) -> None:
        """Downloads new changes and bookmarks from `remote`."""
        await self._arun(["git", "fetch", "--remote", remote])

    async def rebase(self, destination: str, source: str = "@") -> None:
        """Moves `source` and its descendants on top of `destination`.

        Args:
            destination (str): The new parent, e.g. 'main@origin'.
            source (str, optional): The revision to move. Defaults to '@'.
        """
        await self._arun(["rebase", "--source", source, "--destination", destination])

    async def bookmark_set(self, name: str, revision: str = "@-") -> None:
        """Points bookmark `name` at `revision`, creating it if needed.

        Args:
            name (str): The bookmark name.
            revision (str, optional): Target revision. Defaults to '@-'.
        """
        await self._arun(["bookmark", "set", name, "--revision", revision])

    async def git_push(self, remote: str, bookmark: str) -> None:
        """Pushes a single bookmark, allowing it to be created on the remote.

        Args:
            remote (str): The remote name.
            bookmark (str): The bookmark to push.
        """
        await self._arun(
            ["git", "push", "--allow-new", "--remote", remote, "--bookmark", bookmark]
        )

    def config_get(self, key: str) -> str:
        """Reads a configuration value such as 'user.email'."""
        return self._run(["config", "get", key])

    def log_authors(self) -> list[str]:
        """Lists the author of every change in the repository.

        Returns:
            list[str]: One 'Name email' line per change, duplicates included.
                       The root change yields a blank line.
        """
        output = self._run(
            ["log", "--no-graph", "--revisions", "all()", "--template", AUTHOR_TEMPLATE]
        )
        return output.splitlines() if output else []

    def change_count(self) -> int:
        """Counts the committed changes below the working copy, excluding root."""
        output = self._run(
            ["log", "--no-graph", "--revisions", "::@- ~ root()", "--template", '"x\\n"']
        )
        return len(output.splitlines()) if output else 0
