"""Data models for the filewatcher package."""

from dataclasses import dataclass, field
from enum import Enum
import time


def current_time_ms() -> int:
    """Wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class EventType(Enum):
    """Kinds of per-file change notifications."""
    CREATE = "CREATE"
    MODIFY = "MODIFY"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    """
    A single filesystem change notification for a watched project.

    Attributes:
        path: Absolute path of the affected file, forward-slash separated
        event_type: The kind of change (CREATE, MODIFY, DELETE)
        timestamp: Milliseconds since the epoch when the change was seen;
            only used to order events within a batch
    """
    path: str
    event_type: EventType
    timestamp: int = field(default_factory=current_time_ms)

    def __post_init__(self):
        if not self.path:
            raise ValueError("path must not be empty")
        if "\\" in self.path:
            raise ValueError(f"path must use forward slashes: {self.path}")

    @property
    def base_name(self) -> str:
        """Filename part of the path; events on the project root render as '/'."""
        index = self.path.rfind("/")
        if index == -1:
            return self.path
        name = self.path[index + 1:]
        return name or "/"

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "path": self.path,
            "type": self.event_type.value,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ChangeEvent":
        """Create from dictionary."""
        return cls(
            path=data["path"],
            event_type=EventType(data["type"]),
            timestamp=data.get("timestamp", current_time_ms()),
        )
