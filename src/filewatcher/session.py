"""Watcher session: one batch aggregator per watched project."""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Protocol

from .batch_aggregator import BatchAggregator
from .config import WatcherConfig
from .descriptor import DeletionNotice, FullDescriptor, WatchDescriptor
from .exceptions import ProjectAlreadyWatchedError, ProjectNotFoundError
from .fs_watcher import FSWatcherPool
from .models import ChangeEvent, current_time_ms


class SyncNotifier(Protocol):
    def notify_changes(self, project_id: str, path_to_monitor: str, last_sync_ms: int) -> None:
        ...


@dataclass
class WatchedProject:
    """Session state for one project."""
    descriptor: FullDescriptor
    aggregator: BatchAggregator
    last_sync_ms: int = 0
    # Held for the whole of a sync so syncs of one project never overlap
    sync_lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)


class WatcherSession:
    """
    Wires filesystem changes through per-project aggregators to the coordinator.

    Events for a project are filtered against its descriptor (ignored paths
    and filenames, events older than the project's creation time) before
    being batched. When a batch settles, the notifier is called on a
    background thread; the session does not retry it. Syncs of the same
    project run one at a time, and close() waits (bounded by
    shutdown_timeout_s) for the syncs still in flight.
    """

    def __init__(
        self,
        notifier: SyncNotifier,
        config: Optional[WatcherConfig] = None,
        logger: Optional[logging.Logger] = None,
        fs_pool: Optional[FSWatcherPool] = None,
    ):
        """
        Initialize the session.

        Args:
            notifier: Receives "changes ready" for each settled project
            config: Watcher configuration
            logger: Logger shared by the session and its aggregators
            fs_pool: Filesystem watcher pool (created if omitted)
        """
        self.notifier = notifier
        self.config = config or WatcherConfig()
        self.logger = logger or logging.getLogger(__name__)
        self._fs_pool = fs_pool or FSWatcherPool(self.receive_changes, self.config.recursive)
        self._projects: Dict[str, WatchedProject] = {}
        self._sync_threads: List[threading.Thread] = []
        self._lock = threading.RLock()

    def watch(self, descriptor: WatchDescriptor) -> bool:
        """
        Apply a watch descriptor from the coordinator.

        A deletion notice stops watching the project. A full descriptor
        starts watching it, replacing the current watch if its configuration
        changed.

        Returns:
            True if the set of watches changed
        """
        if isinstance(descriptor, DeletionNotice):
            try:
                self.unwatch(descriptor.project_id)
                return True
            except ProjectNotFoundError:
                self.logger.debug(f"Deletion notice for unwatched project {descriptor.project_id}")
                return False

        with self._lock:
            current = self._projects.get(descriptor.project_id)
            if current is not None and current.descriptor == descriptor:
                return False

        # Observers are stopped outside the lock; their callbacks need it
        if current is not None:
            self.logger.info(
                f"Watch configuration changed for {descriptor.project_id} "
                f"(state {current.descriptor.watch_state_id} -> {descriptor.watch_state_id})"
            )
            try:
                self.unwatch(descriptor.project_id)
            except ProjectNotFoundError:
                pass
        self._add_project(descriptor)
        return True

    def _add_project(self, descriptor: FullDescriptor) -> None:
        with self._lock:
            if descriptor.project_id in self._projects:
                raise ProjectAlreadyWatchedError(
                    f"Project already being watched: {descriptor.project_id}"
                )
            aggregator = BatchAggregator(
                descriptor.project_id,
                self._on_changes_ready,
                quiet_period_ms=self.config.quiet_period_ms,
                summary_max_length=self.config.summary_max_length,
                logger=self.logger,
            )
            self._projects[descriptor.project_id] = WatchedProject(descriptor, aggregator)

        try:
            self._fs_pool.start_watching(descriptor)
        except OSError:
            with self._lock:
                self._projects.pop(descriptor.project_id, None)
            aggregator.dispose()
            raise
        self.logger.info(
            f"Watching {descriptor.project_id} at {descriptor.path_to_monitor}"
            f"{' (external)' if descriptor.is_external else ''}"
        )

    def unwatch(self, project_id: str) -> None:
        """
        Stop watching a project and discard its pending changes.

        Raises:
            ProjectNotFoundError: If the project is not watched
        """
        with self._lock:
            project = self._projects.pop(project_id, None)
        if project is None:
            raise ProjectNotFoundError(f"Project is not being watched: {project_id}")

        project.aggregator.dispose()
        self._fs_pool.stop_watching(project_id)
        self.logger.info(f"Stopped watching {project_id}")

    def receive_changes(self, project_id: str, events: Iterable[ChangeEvent]) -> int:
        """
        Feed change events for a project into its aggregator.

        Returns:
            Number of events accepted after filtering
        """
        with self._lock:
            project = self._projects.get(project_id)
        if project is None:
            self.logger.debug(f"Dropping events for unwatched project {project_id}")
            return 0

        descriptor = project.descriptor
        accepted = [
            e for e in events
            if not descriptor.should_ignore(e.path) and not descriptor.predates_watch(e)
        ]
        if accepted:
            project.aggregator.ingest(accepted)
        return len(accepted)

    def get_descriptor(self, project_id: str) -> Optional[FullDescriptor]:
        with self._lock:
            project = self._projects.get(project_id)
        return project.descriptor if project else None

    def projects(self) -> List[str]:
        """Get the ids of the watched projects."""
        with self._lock:
            return list(self._projects.keys())

    def _on_changes_ready(self, project_id: str) -> Optional[threading.Thread]:
        with self._lock:
            project = self._projects.get(project_id)
            if project is None:
                return None

            thread = threading.Thread(
                target=self._sync_project,
                args=(project,),
                name=f"Sync-{project_id}",
                daemon=True,
            )
            self._sync_threads = [t for t in self._sync_threads if t.is_alive()]
            self._sync_threads.append(thread)

        thread.start()
        return thread

    def _sync_project(self, project: WatchedProject) -> None:
        project_id = project.descriptor.project_id
        with project.sync_lock:
            started = current_time_ms()
            try:
                self.notifier.notify_changes(
                    project_id,
                    project.descriptor.path_to_monitor,
                    project.last_sync_ms,
                )
                project.last_sync_ms = started
            except Exception as e:
                self.logger.error(f"Failed to notify coordinator of changes to {project_id}: {e}")

    def _join_sync_threads(self) -> None:
        with self._lock:
            threads = list(self._sync_threads)
            self._sync_threads.clear()

        deadline = time.monotonic() + self.config.shutdown_timeout_s
        for thread in threads:
            thread.join(timeout=max(0.0, deadline - time.monotonic()))
            if thread.is_alive():
                self.logger.warning(f"Sync still running at shutdown: {thread.name}")

    def close(self) -> None:
        """Flush pending batches, wait for their syncs, and stop watching."""
        self._fs_pool.stop_all()

        with self._lock:
            projects = list(self._projects.values())

        for project in projects:
            project.aggregator.flush()
            project.aggregator.dispose()

        self._join_sync_threads()

        with self._lock:
            self._projects.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
