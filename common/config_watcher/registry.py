"""Registry of watched directories for one config domain."""

from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional, Union

from common.models import ConfigDomain
from common.utils import logger

from .metadata import Source

PathLike = Union[str, Path]


def canonical_path(path: PathLike) -> Path:
    """Absolute, symlink-resolved form of ``path``; the path need not exist."""
    return Path(path).expanduser().resolve()


class SourceRegistry:
    """Thread-safe, append-only set of sources for a single domain.

    Registering a path that is already known returns the existing source, so
    repeated initialization never duplicates watch targets.
    """

    def __init__(self, domain: ConfigDomain) -> None:
        self.domain = domain
        self._sources: Dict[Path, Source] = {}
        self._lock = Lock()

    def register(self, path: PathLike) -> Source:
        key = canonical_path(path)
        with self._lock:
            existing = self._sources.get(key)
            if existing is not None:
                logger.debug(f"Source {key} already registered for {self.domain.value}")
                return existing

            source = Source(domain=self.domain, path=key)
            self._sources[key] = source

        logger.info(f"Registered {self.domain.value} config source {key}")
        return source

    def get(self, path: PathLike) -> Optional[Source]:
        key = canonical_path(path)
        with self._lock:
            return self._sources.get(key)

    def list_sources(self) -> List[Source]:
        with self._lock:
            return list(self._sources.values())

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        key = canonical_path(path)
        with self._lock:
            return key in self._sources

    def __len__(self) -> int:
        with self._lock:
            return len(self._sources)
