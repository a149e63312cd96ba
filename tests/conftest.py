"""Pytest configuration and shared fixtures for the config discovery tests."""

import threading
from pathlib import Path
from typing import Callable, Generator, List

import pytest

from common.config_watcher.manager import PollingConfigWatcher
from common.models import ChangeSet, ConfigDomain, WatcherSettings


class RecordingListener:
    """Collects published change sets and signals when one arrives."""

    def __init__(self) -> None:
        self.change_sets: List[ChangeSet] = []
        self.received = threading.Event()
        self._lock = threading.Lock()

    def __call__(self, change_set: ChangeSet) -> None:
        with self._lock:
            self.change_sets.append(change_set)
        self.received.set()

    @property
    def new(self) -> List[str]:
        return [name for cs in self.change_sets for name in cs.new]

    @property
    def modified(self) -> List[str]:
        return [name for cs in self.change_sets for name in cs.modified]

    @property
    def deleted(self) -> List[str]:
        return [name for cs in self.change_sets for name in cs.deleted]


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def watch_dir(tmp_path: Path) -> Path:
    """An existing, empty directory to watch."""
    path = tmp_path / "pipeline_config" / "default"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def make_watcher() -> Generator[Callable[..., PollingConfigWatcher], None, None]:
    """Build watchers and make sure their threads are stopped after the test."""
    created: List[PollingConfigWatcher] = []

    def factory(
        domain: ConfigDomain = ConfigDomain.PIPELINE, **settings: object
    ) -> PollingConfigWatcher:
        watcher = PollingConfigWatcher(domain, WatcherSettings(**settings))
        created.append(watcher)
        return watcher

    yield factory

    for watcher in created:
        watcher.stop()
