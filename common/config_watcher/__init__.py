"""Config watcher system components."""

from .base import BaseConfigWatcher, ChangeListener
from .exceptions import ConfigWatcherError, SourceNotFoundError
from .manager import PollingConfigWatcher
from .metadata import FileRecord, FileState, Source, WatcherStats
from .registry import SourceRegistry

__all__ = [
    "BaseConfigWatcher",
    "ChangeListener",
    "ConfigWatcherError",
    "FileRecord",
    "FileState",
    "PollingConfigWatcher",
    "Source",
    "SourceNotFoundError",
    "SourceRegistry",
    "WatcherStats",
]
