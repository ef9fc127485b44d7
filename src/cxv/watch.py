# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Filesystem watch registrations for artifact documents."""

import logging
import os
import threading
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver, ObservedWatch

logger = logging.getLogger(__name__)


class _PathEventHandler(FileSystemEventHandler):
    """Forward create, change, delete and move events to the watch table."""

    def __init__(self, table: "WatchTable") -> None:
        super().__init__()
        self._table = table

    def _forward(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._table.dispatch(Path(os.fsdecode(event.src_path)))
        dest_path = getattr(event, "dest_path", "")
        if dest_path:
            self._table.dispatch(Path(os.fsdecode(dest_path)))

    def on_created(self, event: FileSystemEvent) -> None:
        self._forward(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._forward(event)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._forward(event)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._forward(event)


class WatchTable:
    """Map watched paths to subscribing artifacts.

    Each event on a watched path calls ``on_change`` once per subscriber,
    synchronously and without debouncing.
    """

    def __init__(
        self,
        on_change: Callable[[Path], None],
        observer_factory: Callable[[], BaseObserver] = Observer,
    ) -> None:
        """Initialize an empty table.

        Args:
            on_change: Callback receiving the subscriber of a changed path.
            observer_factory: Creates the watchdog observer on first use.
        """
        self._on_change = on_change
        self._observer_factory = observer_factory
        self._observer: BaseObserver | None = None
        self._handler = _PathEventHandler(self)
        self._subscribers: dict[Path, set[Path]] = {}
        self._directory_watches: dict[Path, ObservedWatch] = {}
        self._lock = threading.Lock()

    def watch(self, path: Path, subscriber: Path) -> None:
        """Subscribe ``subscriber`` to events on ``path``.

        Args:
            path: File to watch; its parent directory is observed.
            subscriber: Artifact reloaded when ``path`` changes.
        """
        with self._lock:
            self._subscribers.setdefault(path, set()).add(subscriber)
            directory = path.parent
            if directory in self._directory_watches:
                return
            if not directory.is_dir():
                logger.warning(f"Cannot watch missing directory (path={path})")
                return
            if self._observer is None:
                self._observer = self._observer_factory()
                self._observer.start()
            self._directory_watches[directory] = self._observer.schedule(
                self._handler, str(directory), recursive=False
            )
            logger.debug(f"Watching directory (directory={directory})")

    def subscribers(self, path: Path) -> frozenset[Path]:
        with self._lock:
            return frozenset(self._subscribers.get(path, ()))

    def dispatch(self, path: Path) -> None:
        """Notify every subscriber of ``path`` that it changed."""
        for subscriber in sorted(self.subscribers(path)):
            logger.debug(f"Watched file changed (path={path} subscriber={subscriber})")
            self._on_change(subscriber)

    def close(self) -> None:
        """Remove every watch and stop the observer."""
        with self._lock:
            observer = self._observer
            self._observer = None
            watches = list(self._directory_watches.values())
            self._directory_watches.clear()
            self._subscribers.clear()
        if observer is None:
            return
        for watch in watches:
            observer.unschedule(watch)
        observer.stop()
        if threading.current_thread() is not observer:
            observer.join()

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)
