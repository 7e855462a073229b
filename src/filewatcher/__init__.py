"""
File Watcher Agent

Watches project directories and tells a remote build coordinator when a
project's changes have settled.

Features:
- Quiet-period batching: a burst of changes is reported once it ends
- Duplicate create/delete suppression within a batch
- Validated watch descriptors (full definitions and deletion notices)
- Per-project ignore filters and stale-event filtering
- watchdog-based filesystem observers
"""

from .models import (
    EventType,
    ChangeEvent,
    current_time_ms,
)

from .descriptor import (
    FullDescriptor,
    DeletionNotice,
    WatchDescriptor,
    parse_watched_project,
    normalize_drive_letter,
    validate_path_to_monitor,
)

from .config import WatcherConfig

from .exceptions import (
    WatcherError,
    DescriptorError,
    InvalidPathError,
    MissingFieldError,
    ConfigError,
    CoordinatorError,
    ProjectNotFoundError,
    ProjectAlreadyWatchedError,
)

from .batch_aggregator import (
    BatchAggregator,
    sort_events,
    remove_duplicate_events_of_type,
    summarize_changes,
)
from .fs_watcher import FSWatcherPool, FSEventHandler
from .coordinator import CoordinatorClient, CliSyncNotifier
from .logsetup import setup_logging
from .session import WatcherSession


__all__ = [
    # Models
    "EventType",
    "ChangeEvent",
    "current_time_ms",
    # Descriptors
    "FullDescriptor",
    "DeletionNotice",
    "WatchDescriptor",
    "parse_watched_project",
    "normalize_drive_letter",
    "validate_path_to_monitor",
    # Config
    "WatcherConfig",
    # Exceptions
    "WatcherError",
    "DescriptorError",
    "InvalidPathError",
    "MissingFieldError",
    "ConfigError",
    "CoordinatorError",
    "ProjectNotFoundError",
    "ProjectAlreadyWatchedError",
    # Components
    "BatchAggregator",
    "sort_events",
    "remove_duplicate_events_of_type",
    "summarize_changes",
    "FSWatcherPool",
    "FSEventHandler",
    "CoordinatorClient",
    "CliSyncNotifier",
    "setup_logging",
    # Session
    "WatcherSession",
]

__version__ = "0.1.0"
