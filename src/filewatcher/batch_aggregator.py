"""Quiet-period batching of file change events.

Changes that arrive within milliseconds of each other are usually related
(a refactoring touching many files, a build writing its outputs), so rather
than report each one we wait until the project has been quiet for a while
and report the whole group at once. Every new event restarts the wait, which
keeps a burst together without letting latency grow past the quiet period
once the burst ends.
"""

import logging
import threading
from typing import Callable, Iterable, List, Optional

from .models import ChangeEvent, EventType

DEFAULT_QUIET_PERIOD_MS = 1000
DEFAULT_SUMMARY_MAX_LENGTH = 256

_EVENT_MARKERS = {
    EventType.CREATE: "+",
    EventType.MODIFY: ">",
    EventType.DELETE: "-",
}

_module_logger = logging.getLogger(__name__)


def sort_events(events: Iterable[ChangeEvent]) -> List[ChangeEvent]:
    """Sort events by ascending timestamp, keeping arrival order on ties."""
    return sorted(events, key=lambda e: e.timestamp)


def remove_duplicate_events_of_type(
    events: List[ChangeEvent],
    event_type: EventType,
    logger: Optional[logging.Logger] = None,
) -> List[ChangeEvent]:
    """
    Drop repeated events of one type for the same path.

    For any given path, when several events of ``event_type`` follow each
    other with no event of another type on that path in between, only the
    first is kept.

    Args:
        events: Events sorted by timestamp
        event_type: CREATE or DELETE
        logger: Logger for removed duplicates

    Returns:
        The events with duplicates removed, order preserved
    """
    logger = logger or _module_logger

    if event_type == EventType.MODIFY:
        logger.error(f"Unsupported event type for duplicate removal: {event_type.value}")
        return list(events)

    active_paths = set()
    result = []

    for event in events:
        if event.event_type == event_type:
            if event.path in active_paths:
                logger.debug(f"Removing duplicate event: {event.to_dict()}")
                continue
            active_paths.add(event.path)
        else:
            active_paths.discard(event.path)
        result.append(event)

    return result


def summarize_changes(
    events: Iterable[ChangeEvent],
    max_length: int = DEFAULT_SUMMARY_MAX_LENGTH,
) -> str:
    """
    Render a short, human-readable summary of a batch.

    Each event contributes a marker (+ create, > modify, - delete) and its
    filename. Rendering stops once the text passes ``max_length``, in which
    case a " (...) " marker shows the list is incomplete.
    """
    result = "[ "

    for event in events:
        result += _EVENT_MARKERS.get(event.event_type, "?")
        result += event.base_name + " "
        if len(result) > max_length:
            break

    if len(result) > max_length:
        result += " (...) "
    result += "]"

    return result


class BatchAggregator:
    """
    Collects change events for one project and reports settled batches.

    Events are buffered until no new event has arrived for
    ``quiet_period_ms``; the buffer is then sorted, cleaned of duplicate
    creates/deletes, logged, and the owner is told the project has changes
    ready. A generation counter guarded by the lock ties each timer to the
    ingest call that started it, so a timer superseded by a later ingest
    never flushes.
    """

    def __init__(
        self,
        project_id: str,
        on_changes_ready: Callable[[str], None],
        quiet_period_ms: int = DEFAULT_QUIET_PERIOD_MS,
        summary_max_length: int = DEFAULT_SUMMARY_MAX_LENGTH,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the aggregator.

        Args:
            project_id: Project whose events this aggregator batches
            on_changes_ready: Called with the project id when a batch settles
            quiet_period_ms: Quiet time required before a flush
            summary_max_length: Length cap for the logged batch summary
            logger: Logger to report through (module logger if omitted)
        """
        self.project_id = project_id
        self.on_changes_ready = on_changes_ready
        self.quiet_period_ms = quiet_period_ms
        self.summary_max_length = summary_max_length
        self.logger = logger or _module_logger

        self._pending: List[ChangeEvent] = []
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._disposed = False
        self._lock = threading.Lock()

    def ingest(self, events: Iterable[ChangeEvent]) -> None:
        """
        Add events to the pending batch and restart the quiet-period timer.

        Does nothing once the aggregator is disposed.

        Args:
            events: Change events, appended in the given order
        """
        with self._lock:
            if self._disposed:
                return

            self._pending.extend(events)

            if self._timer is not None:
                self._timer.cancel()

            self._generation += 1
            timer = threading.Timer(
                self.quiet_period_ms / 1000.0,
                self._run_quiet_period_task,
                args=(self._generation,),
            )
            timer.daemon = True
            self._timer = timer
            timer.start()

    def flush(self) -> List[ChangeEvent]:
        """
        Flush the pending batch now instead of waiting for the timer.

        Returns:
            The cleaned batch (empty if nothing was pending or disposed)
        """
        with self._lock:
            generation = self._generation
        return self._run_quiet_period_task(generation)

    def dispose(self) -> None:
        """Permanently deactivate the aggregator. Safe to call repeatedly."""
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending = []

        self.logger.info(f"dispose() called on BatchAggregator for {self.project_id}")

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def pending_count(self) -> int:
        """Get number of events waiting for the next flush."""
        with self._lock:
            return len(self._pending)

    def _run_quiet_period_task(self, generation: int) -> List[ChangeEvent]:
        try:
            return self._on_quiet_period_expiry(generation)
        except Exception as e:
            self.logger.error(
                f"Quiet period task failed for project {self.project_id}: {e}",
                exc_info=True,
            )
            return []

    def _on_quiet_period_expiry(self, generation: int) -> List[ChangeEvent]:
        """Take the pending buffer, clean it and notify the owner."""
        with self._lock:
            if self._disposed or generation != self._generation:
                return []

            entries = self._pending
            self._pending = []

            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

        if not entries:
            return []

        entries = sort_events(entries)

        entries = remove_duplicate_events_of_type(entries, EventType.CREATE, self.logger)
        entries = remove_duplicate_events_of_type(entries, EventType.DELETE, self.logger)

        if not entries:
            return []

        summary = summarize_changes(entries, self.summary_max_length)
        self.logger.info(
            f"Batch change summary for {self.project_id} @ {entries[-1].timestamp}: {summary}"
        )

        if self._disposed:
            return entries

        self.on_changes_ready(self.project_id)
        return entries
