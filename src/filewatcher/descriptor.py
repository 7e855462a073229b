"""Watch descriptors: validated descriptions of what to watch for a project.

A descriptor arrives from the build coordinator as an untyped record, either
as a full definition of the project to watch or as a deletion notice that
only names the project being removed.
"""

import dataclasses
import fnmatch
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from .exceptions import DescriptorError, InvalidPathError, MissingFieldError
from .models import ChangeEvent

NON_PROJECT_TYPE = "non-project"


def normalize_drive_letter(path: Optional[str]) -> Optional[str]:
    """Lowercase a leading Windows drive letter (``C:/x`` -> ``c:/x``)."""
    if path and len(path) >= 2 and path[1] == ":":
        return path[0].lower() + path[1:]
    return path


def validate_path_to_monitor(path: Optional[str]) -> None:
    """
    Check the path-to-monitor format.

    Raises:
        InvalidPathError: If the path is empty, contains a backslash, does
            not start with '/' or ends with a path separator
    """
    if not path:
        raise InvalidPathError(f"Path to monitor should be defined: {path!r}")
    if "\\" in path:
        raise InvalidPathError(
            f"Path to monitor should not contain Windows-style path separators: {path}"
        )
    if not path.startswith("/"):
        raise InvalidPathError(
            f"Path to monitor should always begin with a forward slash: {path}"
        )
    if path.endswith("/") or path.endswith("\\"):
        raise InvalidPathError(f"Path to monitor may not end with path separator: {path}")


@dataclass(frozen=True)
class FullDescriptor:
    """
    Full definition of a watched project.

    Immutable after construction; use with_creation_time() to get a revised
    copy. List-valued fields are stored as tuples so the caller's lists are
    never aliased.

    Attributes:
        project_id: Identifier of the project
        path_to_monitor: Absolute, forward-slash root directory to watch
        ignored_paths: Path prefixes/globs (relative to the root) to exclude
        ignored_filenames: Bare filenames/globs excluded in any directory
        watch_state_id: Server correlation token for this watch configuration
        is_external: True for "non-project" roots outside the managed tree
        files_to_watch: Extra individual files watched alongside the root
        creation_time_msecs: When watching logically began; earlier events
            are stale
    """
    project_id: str
    path_to_monitor: str
    ignored_paths: Tuple[str, ...] = ()
    ignored_filenames: Tuple[str, ...] = ()
    watch_state_id: Optional[str] = None
    is_external: bool = False
    files_to_watch: Tuple[str, ...] = ()
    creation_time_msecs: Optional[int] = None

    def __post_init__(self):
        if not self.project_id:
            raise MissingFieldError("projectID is required")
        validate_path_to_monitor(self.path_to_monitor)
        if self.creation_time_msecs is not None and self.creation_time_msecs <= 0:
            raise DescriptorError(
                f"creation time must be positive: {self.creation_time_msecs}"
            )
        object.__setattr__(self, "ignored_paths", tuple(self.ignored_paths))
        object.__setattr__(self, "ignored_filenames", tuple(self.ignored_filenames))
        object.__setattr__(self, "files_to_watch", tuple(self.files_to_watch))

    @property
    def optional_path_to_monitor(self) -> Optional[str]:
        return self.path_to_monitor

    def with_creation_time(self, creation_time_msecs: int) -> "FullDescriptor":
        """Copy of this descriptor with only the creation time replaced."""
        return dataclasses.replace(self, creation_time_msecs=creation_time_msecs)

    def should_ignore(self, path: str) -> bool:
        """
        Check if a changed path is excluded by this project's filters.

        Args:
            path: Absolute forward-slash path of the changed file

        Returns:
            True if the path matches an ignored path or filename
        """
        name = path.rsplit("/", 1)[-1]
        for pattern in self.ignored_filenames:
            if fnmatch.fnmatchcase(name, pattern):
                return True

        if path == self.path_to_monitor:
            relative = "/"
        elif path.startswith(self.path_to_monitor + "/"):
            relative = path[len(self.path_to_monitor):]
        else:
            relative = path

        for pattern in self.ignored_paths:
            prefix = pattern.rstrip("/")
            if prefix and (relative == prefix or relative.startswith(prefix + "/")):
                return True
            if fnmatch.fnmatchcase(relative, pattern):
                return True
        return False

    def predates_watch(self, event: ChangeEvent) -> bool:
        """True if the event happened before watching of this project began."""
        return (
            self.creation_time_msecs is not None
            and event.timestamp < self.creation_time_msecs
        )


@dataclass(frozen=True)
class DeletionNotice:
    """Notice that a previously watched project is no longer to be watched."""
    project_id: str
    watch_state_id: Optional[str] = field(default=None)

    def __post_init__(self):
        if not self.project_id:
            raise MissingFieldError("projectID is required")

    @property
    def optional_path_to_monitor(self) -> Optional[str]:
        return None


WatchDescriptor = Union[FullDescriptor, DeletionNotice]


def _string_list(record: dict, key: str) -> Tuple[str, ...]:
    values = record.get(key) or ()
    if not isinstance(values, (list, tuple)) or not all(isinstance(v, str) for v in values):
        raise DescriptorError(f"{key} must be a list of strings: {values!r}")
    return tuple(values)


def _ref_path_sources(record: dict) -> Tuple[str, ...]:
    ref_paths = record.get("refPaths") or ()
    if not isinstance(ref_paths, (list, tuple)):
        raise DescriptorError(f"refPaths must be a list: {ref_paths!r}")
    sources = []
    for ref in ref_paths:
        source = ref.get("from") if isinstance(ref, dict) else None
        if not source or not isinstance(source, str):
            raise MissingFieldError(f"refPaths entry has no 'from' path: {ref!r}")
        sources.append(source)
    return tuple(sources)


def parse_watched_project(record: dict, is_deletion: bool = False) -> WatchDescriptor:
    """
    Build a descriptor from a watched-project record.

    Args:
        record: Wire record (projectID, pathToMonitor, ignoredPaths,
            ignoredFilenames, projectWatchStateId, type,
            projectCreationTime, refPaths)
        is_deletion: The record announces removal of the project

    Returns:
        A DeletionNotice if is_deletion, otherwise a validated FullDescriptor

    Raises:
        MissingFieldError: If projectID or a refPaths source is missing
        InvalidPathError: If pathToMonitor is missing or malformed
        DescriptorError: If any other field has the wrong type
    """
    if not isinstance(record, dict):
        raise DescriptorError(f"watched project record must be an object: {record!r}")

    project_id = record.get("projectID")
    if not project_id:
        raise MissingFieldError(f"projectID is missing from record: {record}")
    if not isinstance(project_id, str):
        raise DescriptorError(f"projectID must be a string: {project_id!r}")

    # Deletions only carry the project id
    if is_deletion:
        return DeletionNotice(project_id=project_id)

    path_to_monitor = record.get("pathToMonitor")
    if path_to_monitor is not None and not isinstance(path_to_monitor, str):
        raise InvalidPathError(f"Path to monitor must be a string: {path_to_monitor!r}")

    project_type = record.get("type")
    if project_type is not None and not isinstance(project_type, str):
        raise DescriptorError(f"type must be a string: {project_type!r}")

    watch_state_id = record.get("projectWatchStateId")
    if watch_state_id is not None and not isinstance(watch_state_id, str):
        raise DescriptorError(f"projectWatchStateId must be a string: {watch_state_id!r}")

    creation_time = record.get("projectCreationTime")
    if creation_time is not None and (
        isinstance(creation_time, bool) or not isinstance(creation_time, int)
    ):
        raise DescriptorError(f"projectCreationTime must be an integer: {creation_time!r}")

    return FullDescriptor(
        project_id=project_id,
        path_to_monitor=normalize_drive_letter(path_to_monitor),
        ignored_paths=_string_list(record, "ignoredPaths"),
        ignored_filenames=_string_list(record, "ignoredFilenames"),
        watch_state_id=watch_state_id,
        is_external=bool(project_type) and project_type.lower() == NON_PROJECT_TYPE,
        files_to_watch=_ref_path_sources(record),
        creation_time_msecs=creation_time,
    )
