import os
from pathlib import Path

"""Global constants and path definitions for storesync.

This module defines the filesystem layout (adhering to XDG standards where applicable),
application identifiers, and the fixed values the version-control backends agree on.
"""

# --- Identity ---
APP_NAME = "storesync"
"""str: The human-readable application name."""

# --- Paths ---
_XDG_STATE = os.environ.get("XDG_STATE_HOME")
_BASE_STATE = Path(_XDG_STATE) if _XDG_STATE else Path.home() / ".local/state"

STATE_DIR = _BASE_STATE / "storesync"
"""Path: The directory for runtime state data (logs)."""

LOG_FILE = STATE_DIR / "sync.log"
"""Path: The file path for the rotating sync log."""

CONFIG_DIR: Path = Path.home() / ".config/storesync"
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "config.toml"
"""Path: The main configuration file path."""

DEFAULT_STORAGE_PATH: Path = Path.home() / ".storesync"
"""Path: Where records live when no storage path is configured."""

# --- Repository Constants ---
MARKER_NAME = "INIT"
"""str: Zero-byte sentinel at the storage root recording a completed initialization."""

INITIAL_COMMIT_MESSAGE = "Initial commit"
"""str: Message of the history entry that records the marker."""

BACKEND_GIT = "git"
BACKEND_JJ = "jj"

SUPPORTED_BACKENDS = (BACKEND_GIT, BACKEND_JJ)
"""tuple[str, ...]: Backend names accepted in the [vcs] section."""

