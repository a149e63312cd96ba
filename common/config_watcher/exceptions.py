class ConfigWatcherError(Exception):
    """Base class for config watcher errors."""


class SourceNotFoundError(ConfigWatcherError, LookupError):
    """Raised when a scoped read names no registered source, or is ambiguous."""
