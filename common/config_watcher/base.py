"""Base config watcher interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Union

from common.models import ChangeSet

from .metadata import FileRecord, Source

ChangeListener = Callable[[ChangeSet], None]


class BaseConfigWatcher(ABC):
    """Abstract base class for per-domain config directory watchers."""

    @abstractmethod
    def add_source(self, path: Union[str, Path]) -> Source:
        """Register a directory to be watched.

        Registering a path that is already watched is a no-op.

        Args:
            path: Directory to watch; it does not have to exist yet

        Returns:
            The Source for the canonicalized path
        """
        pass

    @abstractmethod
    def subscribe(self, listener: ChangeListener) -> None:
        """Add a listener that receives one ChangeSet per changed source per cycle."""
        pass

    @abstractmethod
    def unsubscribe(self, listener: ChangeListener) -> bool:
        """Remove a listener.

        Returns:
            True if the listener was subscribed, False otherwise
        """
        pass

    @abstractmethod
    def reconcile(self) -> List[ChangeSet]:
        """Run one scan-diff-apply-publish cycle over every registered source.

        Returns:
            The non-empty change sets published during this cycle
        """
        pass

    @abstractmethod
    def scoped_read(
        self, path: Optional[Union[str, Path]] = None
    ) -> AbstractContextManager[Mapping[str, FileRecord]]:
        """Hold a source's lock and expose its snapshot for the duration.

        Args:
            path: Source directory; may be omitted when exactly one is registered

        Raises:
            SourceNotFoundError: If the path is unknown or the choice is ambiguous
        """
        pass

    @abstractmethod
    def current_files(
        self, path: Optional[Union[str, Path]] = None
    ) -> Dict[str, FileRecord]:
        """Copy of a source's snapshot taken under its lock."""
        pass

    @abstractmethod
    def start(self) -> None:
        pass

    @abstractmethod
    def stop(self, timeout: float = 5.0) -> None:
        pass
