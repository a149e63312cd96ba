"""Polling implementation of the config watcher, optionally nudged by watchdog."""

import fnmatch
import hashlib
import os
from contextlib import contextmanager
from pathlib import Path
from threading import Event, Lock, RLock, Thread
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Set, Tuple, Union

from watchdog.events import EVENT_TYPE_MOVED, FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from common.models import ChangeSet, ConfigDomain, WatcherSettings
from common.utils import logger

from .base import BaseConfigWatcher, ChangeListener
from .exceptions import SourceNotFoundError
from .metadata import FileRecord, FileState, Fingerprint, Source, WatcherStats
from .registry import SourceRegistry

Snapshot = Dict[str, FileRecord]

_HASH_CHUNK_SIZE = 64 * 1024


def should_process_file(
    file_name: str, patterns: List[str], ignore_patterns: List[str]
) -> bool:
    """Check if a file should be watched based on include and ignore patterns."""
    for ignore_pattern in ignore_patterns:
        if fnmatch.fnmatch(file_name, ignore_pattern):
            return False

    # If no include patterns specified, include all (except ignored)
    if not patterns:
        return True

    return any(fnmatch.fnmatch(file_name, pattern) for pattern in patterns)


def diff_snapshot(
    snapshot: Mapping[str, FileRecord], current: Mapping[str, Fingerprint]
) -> Tuple[List[str], List[str], List[str]]:
    """Compare the last reconciled snapshot with a fresh scan.

    Returns:
        Sorted (new, modified, deleted) file name lists
    """
    new = sorted(name for name in current if name not in snapshot)
    modified = sorted(
        name
        for name, fingerprint in current.items()
        if name in snapshot and snapshot[name].fingerprint != fingerprint
    )
    deleted = sorted(name for name in snapshot if name not in current)
    return new, modified, deleted


class ReconcileTriggerHandler(FileSystemEventHandler):
    """Wakes the reconciliation loop when a watched directory changes.

    Events carry no state of their own; the next scan decides what changed.
    """

    def __init__(self, source: Source, wake: Event, settings: WatcherSettings) -> None:
        super().__init__()
        self.source = source
        self.wake = wake
        self.settings = settings

    def _handle_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return

        # Moves are relevant when either end matches, e.g. an atomic save
        # renaming a hidden temp file onto the config name
        paths = [event.src_path]
        if event.event_type == EVENT_TYPE_MOVED:
            paths.append(getattr(event, "dest_path", ""))

        for path in paths:
            # Handle both string and bytes paths
            if isinstance(path, bytes):
                path = path.decode("utf-8", errors="replace")
            if path and should_process_file(
                os.path.basename(path),
                self.settings.patterns,
                self.settings.ignore_patterns,
            ):
                break
        else:
            return

        logger.debug(f"File event detected: {event.event_type} - {path}")
        self.wake.set()

    def on_created(self, event: FileSystemEvent) -> None:
        self._handle_event(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._handle_event(event)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._handle_event(event)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._handle_event(event)


class PollingConfigWatcher(BaseConfigWatcher):
    """Watches the config directories of one domain.

    Every cycle lists each registered directory without holding any lock,
    diffs the listing against the last snapshot, applies the result under the
    source's lock and only then publishes the change set to listeners. Cycles
    never overlap, so listeners see batches for a domain in order.
    """

    def __init__(
        self,
        domain: ConfigDomain,
        settings: Optional[WatcherSettings] = None,
        registry: Optional[SourceRegistry] = None,
    ) -> None:
        self.domain = domain
        self.settings = settings or WatcherSettings()
        self.registry = registry or SourceRegistry(domain)
        self.stats = WatcherStats()

        self._snapshots: Dict[Path, Snapshot] = {}
        self._unreadable: Dict[Path, Set[str]] = {}
        self._listeners: List[ChangeListener] = []
        self._listeners_lock = Lock()
        self._cycle_lock = Lock()

        self._thread: Optional[Thread] = None
        self._stop_event = Event()
        self._wake_event = Event()

        self._observer: Any = None
        self._watches: Dict[Path, Any] = {}
        self._observer_lock = RLock()

    # Registration and subscription

    def add_source(self, path: Union[str, Path]) -> Source:
        source = self.registry.register(path)
        self._schedule_notifications(source)
        self._wake_event.set()
        return source

    def subscribe(self, listener: ChangeListener) -> None:
        with self._listeners_lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def unsubscribe(self, listener: ChangeListener) -> bool:
        with self._listeners_lock:
            if listener not in self._listeners:
                return False
            self._listeners.remove(listener)
        return True

    # Reconciliation

    def reconcile(self) -> List[ChangeSet]:
        published: List[ChangeSet] = []
        with self._cycle_lock:
            for source in self.registry.list_sources():
                current = self._scan(source)
                change_set = self._apply(source, current)
                if change_set.is_empty:
                    continue
                self._record(change_set)
                self._publish(change_set)
                published.append(change_set)

            self.stats.cycles += 1
            self.stats.config_total = sum(len(s) for s in self._snapshots.values())
        return published

    def _scan(self, source: Source) -> Dict[str, Fingerprint]:
        """List a source directory; a directory that cannot be listed counts as empty."""
        current: Dict[str, Fingerprint] = {}
        previous = self._snapshots.get(source.path, {})
        unreadable = self._unreadable.setdefault(source.path, set())
        listed: Set[str] = set()
        try:
            with os.scandir(source.path) as entries:
                for entry in entries:
                    if not should_process_file(
                        entry.name,
                        self.settings.patterns,
                        self.settings.ignore_patterns,
                    ):
                        continue
                    listed.add(entry.name)
                    try:
                        if not entry.is_file():
                            continue
                        current[entry.name] = self._fingerprint(entry)
                    except FileNotFoundError:
                        # Removed between listing and stat
                        continue
                    except OSError as e:
                        # Still on disk: keep the last known fingerprint
                        record = previous.get(entry.name)
                        if record is not None:
                            current[entry.name] = record.fingerprint
                        if entry.name not in unreadable:
                            unreadable.add(entry.name)
                            logger.warning(f"Cannot read config file {entry.path}: {e}")
                        continue
                    if entry.name in unreadable:
                        unreadable.discard(entry.name)
                        logger.info(f"Config file {entry.path} is readable again")
        except OSError as e:
            self.stats.scan_failures += 1
            if source.available:
                logger.warning(
                    f"Cannot list {self.domain.value} config dir {source.path}, "
                    f"treating as empty: {e}"
                )
                source.available = False
                self._unschedule_notifications(source)
            return {}

        unreadable.intersection_update(listed)
        if not source.available:
            logger.info(f"{self.domain.value} config dir {source.path} is available again")
            source.available = True
        self._schedule_notifications(source)
        return current

    def _fingerprint(self, entry: os.DirEntry) -> Fingerprint:
        if self.settings.fingerprint == "hash":
            digest = hashlib.sha256()
            with open(entry.path, "rb") as handle:
                for chunk in iter(lambda: handle.read(_HASH_CHUNK_SIZE), b""):
                    digest.update(chunk)
            return digest.hexdigest()

        stat = entry.stat()
        return (stat.st_mtime_ns, stat.st_size)

    def _apply(self, source: Source, current: Dict[str, Fingerprint]) -> ChangeSet:
        # Only this watcher mutates snapshots, and cycles are serialized, so
        # the diff can be computed before taking the source lock.
        previous = self._snapshots.get(source.path, {})
        new, modified, deleted = diff_snapshot(previous, current)
        new_names, modified_names = set(new), set(modified)

        updated: Snapshot = {}
        for name, fingerprint in current.items():
            if name in new_names:
                state = FileState.NEW
            elif name in modified_names:
                state = FileState.MODIFIED
            else:
                state = FileState.UNCHANGED
            record = previous.get(name)
            if record is None or record.fingerprint != fingerprint or record.state != state:
                record = FileRecord(name=name, fingerprint=fingerprint, state=state)
            updated[name] = record

        with source.lock:
            self._snapshots[source.path] = updated

        return ChangeSet(
            domain=self.domain,
            source=str(source.path),
            new=new,
            modified=modified,
            deleted=deleted,
        )

    def _record(self, change_set: ChangeSet) -> None:
        self.stats.new_events += len(change_set.new)
        self.stats.modified_events += len(change_set.modified)
        self.stats.deleted_events += len(change_set.deleted)
        logger.info(
            f"{self.domain.value} configs changed in {change_set.source}: "
            f"new={change_set.new} modified={change_set.modified} deleted={change_set.deleted}"
        )

    def _publish(self, change_set: ChangeSet) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(change_set)
            except Exception as e:
                logger.error(f"Error in {self.domain.value} config listener {listener!r}: {e}")

    # Consistent reads

    def _resolve_source(self, path: Optional[Union[str, Path]]) -> Source:
        if path is None:
            sources = self.registry.list_sources()
            if len(sources) != 1:
                raise SourceNotFoundError(
                    f"{len(sources)} {self.domain.value} sources registered; a path is required"
                )
            return sources[0]

        source = self.registry.get(path)
        if source is None:
            raise SourceNotFoundError(f"No {self.domain.value} source registered for {path}")
        return source

    @contextmanager
    def scoped_read(
        self, path: Optional[Union[str, Path]] = None
    ) -> Iterator[Mapping[str, FileRecord]]:
        source = self._resolve_source(path)
        with source.lock:
            yield MappingProxyType(self._snapshots.get(source.path, {}))

    def current_files(self, path: Optional[Union[str, Path]] = None) -> Dict[str, FileRecord]:
        with self.scoped_read(path) as snapshot:
            return dict(snapshot)

    # Lifecycle

    def start(self) -> None:
        if self.is_running:
            logger.warning(f"{self.domain.value} config watcher already running")
            return

        self._stop_event.clear()
        if self.settings.use_notifications:
            with self._observer_lock:
                self._observer = Observer()
                self._observer.start()
            for source in self.registry.list_sources():
                self._schedule_notifications(source)

        self._thread = Thread(
            target=self._run,
            name=f"{self.domain.value}-config-watcher",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            f"Started {self.domain.value} config watcher "
            f"(interval={self.settings.interval_seconds}s, fingerprint={self.settings.fingerprint})"
        )

    def stop(self, timeout: float = 5.0) -> None:
        if self._thread is None:
            return

        self._stop_event.set()
        self._wake_event.set()
        self._thread.join(timeout=timeout)
        self._thread = None

        with self._observer_lock:
            if self._observer is not None:
                self._observer.stop()
                self._observer.join(timeout=timeout)
                self._observer = None
            self._watches.clear()
        logger.info(f"Stopped {self.domain.value} config watcher")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.reconcile()
            except Exception:
                logger.exception(f"{self.domain.value} config reconciliation failed")
            self._wake_event.wait(self.settings.interval_seconds)
            self._wake_event.clear()

    # Filesystem notifications

    def _schedule_notifications(self, source: Source) -> None:
        with self._observer_lock:
            if self._observer is None or source.path in self._watches:
                return
            handler = ReconcileTriggerHandler(source, self._wake_event, self.settings)
            try:
                self._watches[source.path] = self._observer.schedule(
                    handler, str(source.path), recursive=False
                )
            except OSError as e:
                logger.debug(f"Cannot watch {source.path} for notifications yet: {e}")

    def _unschedule_notifications(self, source: Source) -> None:
        with self._observer_lock:
            watch = self._watches.pop(source.path, None)
            if watch is None or self._observer is None:
                return
            try:
                self._observer.unschedule(watch)
            except (KeyError, OSError) as e:
                logger.debug(f"Watch for {source.path} already gone: {e}")
