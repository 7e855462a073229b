"""Custom exceptions for the filewatcher package."""

from typing import Optional


class WatcherError(Exception):
    """Base exception for all watcher errors."""
    pass


class DescriptorError(WatcherError):
    """A watched-project record could not be turned into a descriptor."""
    pass


class InvalidPathError(DescriptorError):
    """Path to monitor violates the required format."""
    pass


class MissingFieldError(DescriptorError):
    """A required field is absent from the watched-project record."""
    pass


class ConfigError(WatcherError):
    """Invalid watcher configuration."""
    pass


class CoordinatorError(WatcherError):
    """Error talking to the build coordinator (HTTP API or CLI)."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProjectNotFoundError(WatcherError):
    """Project is not being watched."""
    pass


class ProjectAlreadyWatchedError(WatcherError):
    """Project is already being watched."""
    pass
