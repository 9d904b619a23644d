import logging
import os
from pathlib import Path

from rich.prompt import Confirm

from .constants import APP_NAME, MARKER_NAME

logger = logging.getLogger(APP_NAME)


class Marker:
    """The sentinel file recording that a storage repository was initialized.

    Only the existence of the file matters; its content is never read.

    Attributes:
        path (Path): The full path of the marker file.
    """

    def __init__(self, storage_path: Path):
        self.path = storage_path / MARKER_NAME

    def exists(self) -> bool:
        """Returns True if initialization has completed in this storage directory."""
        return self.path.exists()

    def create(self) -> None:
        """Writes the zero-byte marker file."""
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        os.close(fd)
        logger.debug(f"Marker written: {self.path}")

    def remove(self) -> None:
        """Deletes the marker so the next startup initializes again."""
        self.path.unlink(missing_ok=True)
        logger.debug(f"Marker removed: {self.path}")


def ensure_storage_dir(path: Path, assume_yes: bool = False) -> bool:
    """Creates the storage directory after asking the user, if it is missing.

    Args:
        path (Path): The configured storage directory.
        assume_yes (bool, optional): Skip the confirmation prompt. Defaults to False.

    Returns:
        bool: True if the directory exists afterwards, False if the user declined.
    """
    if path.is_dir():
        return True

    if not assume_yes and not Confirm.ask(
        f"Create storage directory at [bold]{path}[/bold]?", default=False
    ):
        logger.info(f"Storage directory creation declined: {path}")
        return False

    path.mkdir(mode=0o700, parents=True, exist_ok=True)
    logger.info(f"Created storage directory {path}")
    return True
