import logging
import re
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .constants import (
    APP_NAME,
    BACKEND_GIT,
    BACKEND_JJ,
    CONFIG_FILE,
    DEFAULT_STORAGE_PATH,
    SUPPORTED_BACKENDS,
)

logger = logging.getLogger(APP_NAME)


class ConfigurationError(ValueError):
    """Raised when no backend can be resolved from the configuration."""


def parse_time(value: int | float | str | None) -> float | None:
    """Converts human-readable time strings (e.g., '90s', '2min') to seconds."""
    if value is None or isinstance(value, (int, float)):
        return value
    match = re.match(
        r"^(\d+(?:\.\d+)?)\s*(s|sec|m|min|h|hr)s?$", str(value).strip().lower()
    )
    if not match:
        raise ValueError(f"Invalid time format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {"s": 1, "sec": 1, "m": 60, "min": 60, "h": 3600, "hr": 3600}
    return num * multiplier[unit]


@dataclass
class StorageConfig:
    """Record storage settings.

    Attributes:
        path (Path): The directory holding the records and the VCS metadata.
    """

    path: Path = DEFAULT_STORAGE_PATH


@dataclass
class VcsConfig:
    """Backend selection settings.

    Attributes:
        backend (str): Either 'git' or 'jj'.
        timeout (float | None): Deadline in seconds for each external command.
    """

    backend: str = BACKEND_GIT
    timeout: float | None = None


@dataclass
class RemoteConfig:
    """Remote synchronization settings of a single backend.

    Attributes:
        enable (bool): Whether commits are reconciled with a remote.
        name (str): The remote to pull from and push to.
        url (str): Remote location, only consulted while initializing.
    """

    enable: bool = False
    name: str = "origin"
    url: str = ""


@dataclass
class GitConfig:
    """Settings of the staged-branch (git) backend."""

    default_branch: str = "main"
    remote: RemoteConfig = field(default_factory=RemoteConfig)


@dataclass
class JJConfig:
    """Settings of the change-based (jj) backend.

    Attributes:
        default_branch (str): The bookmark that is moved and pushed after commits.
        colocate (bool): Whether to keep a git-compatible worktree next to .jj.
        remote (RemoteConfig): Remote synchronization settings.
    """

    default_branch: str = "main"
    colocate: bool = False
    remote: RemoteConfig = field(default_factory=RemoteConfig)


@dataclass(frozen=True)
class BackendSettings:
    """Immutable view of everything a backend needs, resolved once at startup."""

    kind: str
    storage_path: Path
    default_branch: str
    remote_enabled: bool
    remote_name: str
    remote_url: str = ""
    colocate: bool = False
    timeout: float | None = None


@dataclass
class Config:
    """Global configuration aggregator.

    Attributes:
        storage (StorageConfig): Where records are kept.
        vcs (VcsConfig): Which backend to use.
        git (GitConfig): Staged-branch backend settings.
        jj (JJConfig): Change-based backend settings.
    """

    storage: StorageConfig = field(default_factory=StorageConfig)
    vcs: VcsConfig = field(default_factory=VcsConfig)
    git: GitConfig = field(default_factory=GitConfig)
    jj: JJConfig = field(default_factory=JJConfig)

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Loads configuration from defaults and a TOML file.

        Args:
            path (Path | None): An explicit config file. Defaults to the global one.

        Returns:
            Config: The fully merged configuration object.
        """
        instance = cls()
        config_file = path or CONFIG_FILE
        if config_file.exists():
            instance._merge_from_file(config_file)
        elif path is not None:
            logger.warning(f"Config file {path} not found. Using defaults.")
        return instance

    def _merge_from_file(self, path: Path) -> None:
        """Parses a TOML file and merges it into the current instance.

        Args:
            path (Path): Path to the TOML file.
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)

            if not data:
                return

            if "storage" in data:
                self.storage = self._update_dataclass(
                    "storage", self.storage, data["storage"]
                )
            if "vcs" in data:
                self.vcs = self._update_dataclass("vcs", self.vcs, data["vcs"])
            if "git" in data:
                self.git = self._merge_backend("git", self.git, data["git"])
            if "jj" in data:
                self.jj = self._merge_backend("jj", self.jj, data["jj"])

        except tomllib.TOMLDecodeError as e:
            logger.error(f"Config syntax error in {path}: {e}")
        except Exception as e:
            logger.warning(f"Failed to load config from {path}: {e}")

    def _merge_backend(self, section_name: str, instance: Any, updates: dict) -> Any:
        """Merges a backend section, descending into its nested [*.remote] table."""
        updates = dict(updates)
        remote_updates = updates.pop("remote", None)
        merged = self._update_dataclass(section_name, instance, updates)
        if isinstance(remote_updates, dict):
            merged.remote = self._update_dataclass(
                f"{section_name}.remote", merged.remote, remote_updates
            )
        return merged

    @staticmethod
    def _update_dataclass(section_name: str, instance: Any, updates: dict) -> Any:
        """Updates a dataclass, warning on invalid keys and parsing human-readable formats."""
        valid_keys = instance.__dataclass_fields__.keys()
        filtered_updates = {}

        # 1. Catch and warn about typos / unknown keys
        invalid_keys = set(updates.keys()) - set(valid_keys)
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [{section_name}]: {', '.join(sorted(invalid_keys))}. Ignoring."
            )

        # 2. Process valid keys
        for k, v in updates.items():
            if k not in valid_keys:
                continue

            try:
                if k == "timeout":
                    filtered_updates[k] = parse_time(v)
                elif k == "path":
                    filtered_updates[k] = Path(str(v)).expanduser()
                elif k in ["enable", "colocate"]:
                    if not isinstance(v, bool):
                        raise ValueError(f"Expected true or false, got '{v}'")
                    filtered_updates[k] = v
                else:
                    filtered_updates[k] = v
            except ValueError as e:
                logger.warning(
                    f"Config error in [{section_name}].{k}: {e}. Falling back to default."
                )

        return replace(instance, **filtered_updates)

    def backend_settings(self) -> BackendSettings:
        """Resolves the settings of the configured backend.

        Returns:
            BackendSettings: The frozen settings bound to the selected backend.

        Raises:
            ConfigurationError: If the configured backend is not supported.
        """
        kind = self.vcs.backend
        if kind == BACKEND_GIT:
            return BackendSettings(
                kind=kind,
                storage_path=self.storage.path,
                default_branch=self.git.default_branch,
                remote_enabled=self.git.remote.enable,
                remote_name=self.git.remote.name,
                remote_url=self.git.remote.url,
                timeout=self.vcs.timeout,
            )
        if kind == BACKEND_JJ:
            return BackendSettings(
                kind=kind,
                storage_path=self.storage.path,
                default_branch=self.jj.default_branch,
                remote_enabled=self.jj.remote.enable,
                remote_name=self.jj.remote.name,
                remote_url=self.jj.remote.url,
                colocate=self.jj.colocate,
                timeout=self.vcs.timeout,
            )
        raise ConfigurationError(
            f"Unsupported vcs.backend '{kind}'. "
            f"Expected one of: {', '.join(SUPPORTED_BACKENDS)}"
        )
