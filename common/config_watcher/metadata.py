"""Metadata models for the config watcher system."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from threading import RLock
from typing import Tuple, Union

from common.models import ConfigDomain

# (st_mtime_ns, st_size) in "stat" mode, sha256 hex digest in "hash" mode
Fingerprint = Union[Tuple[int, int], str]


class FileState(str, Enum):
    NEW = "new"
    UNCHANGED = "unchanged"
    MODIFIED = "modified"
    DELETED = "deleted"


@dataclass(frozen=True)
class FileRecord:
    """Last reconciled view of a single file in a watched directory."""

    name: str
    fingerprint: Fingerprint
    state: FileState = FileState.NEW


@dataclass
class Source:
    """A watched directory and the lock guarding its snapshot.

    The lock is owned by the registry that created the source; callers reach
    it only through the watcher's scoped read.
    """

    domain: ConfigDomain
    path: Path
    lock: RLock = field(default_factory=RLock, repr=False, compare=False)
    available: bool = True


@dataclass
class WatcherStats:
    """Counters kept by a watcher for the lifetime of the process."""

    cycles: int = 0
    scan_failures: int = 0
    new_events: int = 0
    modified_events: int = 0
    deleted_events: int = 0
    config_total: int = 0
