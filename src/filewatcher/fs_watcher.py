"""File system watching using the watchdog library."""

import logging
import os
import threading
from pathlib import PurePath
from typing import Callable, Dict, FrozenSet, List, Optional

from watchdog.observers import Observer
from watchdog.events import (
    FileSystemEvent,
    FileSystemEventHandler,
    DirModifiedEvent,
)

from .descriptor import FullDescriptor
from .models import ChangeEvent, EventType, current_time_ms

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str, List[ChangeEvent]], None]


def to_watch_path(path) -> str:
    """Convert a watchdog path (str or bytes) to a forward-slash string."""
    return PurePath(os.fsdecode(path)).as_posix()


class FSEventHandler(FileSystemEventHandler):
    """Handler that converts watchdog events to ChangeEvents for one project."""

    def __init__(
        self,
        project_id: str,
        callback: ChangeCallback,
        only_paths: Optional[FrozenSet[str]] = None,
    ):
        """
        Args:
            project_id: Project the events belong to
            callback: Receives (project_id, events)
            only_paths: If given, events for other paths are dropped
        """
        super().__init__()
        self.project_id = project_id
        self.callback = callback
        self.only_paths = only_paths

    def _emit(self, *entries) -> None:
        now = current_time_ms()
        events = [
            ChangeEvent(path=path, event_type=event_type, timestamp=now)
            for event_type, path in entries
            if self.only_paths is None or path in self.only_paths
        ]
        if events:
            self.callback(self.project_id, events)

    def on_created(self, event: FileSystemEvent):
        self._emit((EventType.CREATE, to_watch_path(event.src_path)))

    def on_deleted(self, event: FileSystemEvent):
        self._emit((EventType.DELETE, to_watch_path(event.src_path)))

    def on_modified(self, event: FileSystemEvent):
        # Directory mtime changes just echo changes to their children
        if isinstance(event, DirModifiedEvent):
            return
        self._emit((EventType.MODIFY, to_watch_path(event.src_path)))

    def on_moved(self, event: FileSystemEvent):
        self._emit(
            (EventType.DELETE, to_watch_path(event.src_path)),
            (EventType.CREATE, to_watch_path(event.dest_path)),
        )


class FSWatcherPool:
    """
    Manages watchdog observers, one per watched project.

    Each project's root is watched (recursively by default); every extra
    file to watch is covered by a non-recursive watch on its parent
    directory that only forwards events for that file.
    """

    def __init__(self, callback: ChangeCallback, recursive: bool = True):
        """
        Initialize the watcher pool.

        Args:
            callback: Receives (project_id, events) for every change
            recursive: Whether project roots are watched recursively
        """
        self.callback = callback
        self.recursive = recursive
        self._observers: Dict[str, Observer] = {}
        self._lock = threading.Lock()

    def start_watching(self, descriptor: FullDescriptor) -> bool:
        """
        Start watching a project.

        Args:
            descriptor: Project to watch

        Returns:
            True if watching started, False if already watching
        """
        with self._lock:
            if descriptor.project_id in self._observers:
                return False

            observer = Observer()
            observer.schedule(
                FSEventHandler(descriptor.project_id, self.callback),
                descriptor.path_to_monitor,
                recursive=self.recursive,
            )

            by_parent: Dict[str, set] = {}
            for file_path in descriptor.files_to_watch:
                parent = file_path.rsplit("/", 1)[0] or "/"
                by_parent.setdefault(parent, set()).add(file_path)
            for parent, files in by_parent.items():
                if not os.path.isdir(parent):
                    logger.warning(f"Skipping extra files under missing directory: {parent}")
                    continue
                observer.schedule(
                    FSEventHandler(descriptor.project_id, self.callback, frozenset(files)),
                    parent,
                    recursive=False,
                )

            observer.start()
            self._observers[descriptor.project_id] = observer
            return True

    def stop_watching(self, project_id: str) -> bool:
        """
        Stop watching a project.

        Returns:
            True if watching stopped, False if not watching
        """
        with self._lock:
            observer = self._observers.pop(project_id, None)

        if observer is None:
            return False

        observer.stop()
        observer.join(timeout=5.0)
        return True

    def stop_all(self) -> int:
        """
        Stop all watchers.

        Returns:
            Number of watchers stopped
        """
        with self._lock:
            observers = list(self._observers.values())
            self._observers.clear()

        for observer in observers:
            observer.stop()
        for observer in observers:
            observer.join(timeout=5.0)
        return len(observers)

    def is_watching(self, project_id: str) -> bool:
        with self._lock:
            return project_id in self._observers

    def __len__(self) -> int:
        """Return the number of active watchers."""
        with self._lock:
            return len(self._observers)
