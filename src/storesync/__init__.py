"""storesync: version-control synchronization for a directory of record files.

This package keeps a storage directory under git or jj, with idempotent
initialization, commits that never create empty history entries, and optional
reconciliation with a remote, all run without blocking the calling event loop.
"""

from . import (
    backends,
    cli,
    config,
    constants,
    events,
    git_wrapper,
    jj_wrapper,
    marker,
    process,
    selector,
)

__all__ = [
    "backends",
    "cli",
    "config",
    "constants",
    "events",
    "git_wrapper",
    "jj_wrapper",
    "marker",
    "process",
    "selector",
]
