"""Publish/subscribe hub for sync lifecycle events.

This module provides the EventBus used by every sync component to report
progress without depending on its observers. Listeners are plain callables
invoked synchronously as ``listener(data, event)``. A bounded history of
emitted events is kept for diagnostics and statistics.
"""

import logging
import random
import string
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)

Listener = Callable[[Dict[str, Any], "SyncEvent"], None]

DEFAULT_HISTORY_SIZE = 1000


class SyncEvents:
    """Event names emitted during a sync run."""

    # Configuration
    CONFIG_VALIDATED = "config:validated"
    CONFIG_VALIDATION_FAILED = "config:validation-failed"

    # Staging
    STAGING_CREATED = "staging:created"
    STAGING_CLEANED = "staging:cleaned"
    STAGING_ERROR = "staging:error"

    # Download
    DOWNLOAD_STARTED = "download:started"
    DOWNLOAD_COMPLETED = "download:completed"
    DOWNLOAD_FAILED = "download:failed"

    # Change detection
    CHANGES_DETECTED = "changes:detected"
    CHANGES_CLASSIFIED = "changes:classified"
    CHANGES_ERROR = "changes:error"

    # Validation
    VALIDATION_STARTED = "validation:started"
    VALIDATION_COMPLETED = "validation:completed"
    VALIDATION_FAILED = "validation:failed"

    # Conflicts
    CONFLICTS_DETECTED = "conflicts:detected"
    CONFLICTS_AUTO_RESOLVED = "conflicts:auto-resolved"
    CONFLICTS_REQUIRE_MANUAL = "conflicts:require-manual"
    CONFLICTS_RESOLVED = "conflicts:resolved"

    # User interaction
    USER_PROMPT_STARTED = "user:prompt-started"
    USER_CHOICE_MADE = "user:choice-made"
    USER_INTERACTION_CANCELLED = "user:interaction-cancelled"

    # Progress and phases
    PROGRESS_UPDATE = "progress:update"
    PHASE_STARTED = "phase:started"
    PHASE_COMPLETED = "phase:completed"
    PHASE_FAILED = "phase:failed"

    # Sync lifecycle
    SYNC_STARTED = "sync:started"
    SYNC_COMPLETED = "sync:completed"
    SYNC_FAILED = "sync:failed"

    # Cache
    CACHE_HIT = "cache:hit"
    CACHE_MISS = "cache:miss"
    CACHE_INVALIDATED = "cache:invalidated"


# Documented payload shapes, checked loosely by create_event_data()
EVENT_SCHEMAS: Dict[str, Dict[str, type]] = {
    SyncEvents.CONFIG_VALIDATED: {
        "is_valid": bool,
        "missing_fields": list,
        "demo_mode": bool,
    },
    SyncEvents.STAGING_CREATED: {"staging_path": str},
    SyncEvents.STAGING_CLEANED: {"staging_path": str},
    SyncEvents.DOWNLOAD_COMPLETED: {"staging_path": str, "file_count": int},
    SyncEvents.CHANGES_DETECTED: {
        "additions": list,
        "modifications": list,
        "deletions": list,
        "total_changes": int,
    },
    SyncEvents.CHANGES_CLASSIFIED: {
        "simple": list,
        "auto_resolved": list,
        "complex": list,
        "failed": list,
    },
    SyncEvents.CONFLICTS_AUTO_RESOLVED: {"filename": str, "strategy": str},
    SyncEvents.CONFLICTS_REQUIRE_MANUAL: {"filename": str, "conflict_type": str},
    SyncEvents.PROGRESS_UPDATE: {"phase": str, "progress": int, "message": str},
    SyncEvents.PHASE_STARTED: {"phase": str},
    SyncEvents.PHASE_COMPLETED: {"phase": str, "duration": float, "result": dict},
    SyncEvents.PHASE_FAILED: {"phase": str, "duration": float, "error": str},
    SyncEvents.USER_CHOICE_MADE: {"filename": str, "choice": str},
    SyncEvents.SYNC_COMPLETED: {"duration": float},
    SyncEvents.SYNC_FAILED: {"duration": float, "error": str, "phase": str},
}


@dataclass
class SyncEvent:
    """Envelope for one emitted event.

    Attributes:
        name: Event name (one of SyncEvents)
        data: Event payload
        timestamp: ISO 8601 emission time
        id: Unique event identifier
    """
    name: str
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = ""
    id: str = ""


def _generate_event_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=7))
    return f"{int(time.time() * 1000)}-{suffix}"


def create_event_data(event_name: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Stamp event data with a timestamp, warning on schema type mismatches.

    Args:
        event_name: Event name used to look up the documented schema
        data: Payload to stamp

    Returns:
        Copy of data with a ``timestamp`` key added
    """
    schema = EVENT_SCHEMAS.get(event_name, {})
    for key, expected_type in schema.items():
        if key in data and data[key] is not None:
            if not isinstance(data[key], expected_type):
                # bool is an int subclass; numeric payloads accept both
                if expected_type is float and isinstance(data[key], int):
                    continue
                logger.warning(
                    f"Event {event_name}: expected {key} to be "
                    f"{expected_type.__name__}, got {type(data[key]).__name__}"
                )
    return {**data, "timestamp": datetime.now().isoformat()}


class EventBus:
    """Synchronous event emitter with bounded history.

    Example:
        >>> bus = EventBus()
        >>> unsubscribe = bus.on(SyncEvents.PHASE_STARTED, lambda data, event: print(data))
        >>> bus.emit(SyncEvents.PHASE_STARTED, {"phase": "staging-setup"})
        >>> unsubscribe()
    """

    def __init__(self, max_history_size: int = DEFAULT_HISTORY_SIZE):
        """Initialize event bus.

        Args:
            max_history_size: Maximum number of events kept in history
        """
        self.max_history_size = max_history_size
        self._listeners: Dict[str, List[Listener]] = {}
        self._history: Deque[SyncEvent] = deque(maxlen=max_history_size)

    def on(self, event_name: str, listener: Listener) -> Callable[[], None]:
        """Subscribe to an event.

        Returns:
            Callable that removes the subscription
        """
        self._listeners.setdefault(event_name, []).append(listener)
        return lambda: self.off(event_name, listener)

    def once(self, event_name: str, listener: Listener) -> Callable[[], None]:
        """Subscribe to the next occurrence of an event only."""

        def wrapper(data: Dict[str, Any], event: SyncEvent) -> None:
            self.off(event_name, wrapper)
            listener(data, event)

        return self.on(event_name, wrapper)

    def off(self, event_name: str, listener: Listener) -> None:
        """Remove a subscription. Unknown listeners are ignored."""
        listeners = self._listeners.get(event_name)
        if listeners and listener in listeners:
            listeners.remove(listener)

    def emit(self, event_name: str, data: Optional[Dict[str, Any]] = None) -> SyncEvent:
        """Record an event and notify its listeners.

        Listeners are called in registration order over a snapshot taken
        now, so subscriptions changed during dispatch apply to the next emit.
        A listener that raises is logged and skipped.

        Args:
            event_name: Event name
            data: Event payload

        Returns:
            The emitted SyncEvent envelope
        """
        event = SyncEvent(
            name=event_name,
            data=data if data is not None else {},
            timestamp=datetime.now().isoformat(),
            id=_generate_event_id(),
        )
        self._history.append(event)

        for listener in list(self._listeners.get(event_name, [])):
            try:
                listener(event.data, event)
            except Exception:
                logger.exception(f"Error in event listener for {event_name}")

        return event

    def get_history(self, event_name: Optional[str] = None, limit: int = 100) -> List[SyncEvent]:
        """Return the most recent events in emission order.

        Args:
            event_name: Only return events with this name
            limit: Maximum number of events to return
        """
        history = list(self._history)
        if event_name:
            history = [event for event in history if event.name == event_name]
        if limit <= 0:
            return []
        return history[-limit:]

    def clear_history(self) -> None:
        self._history.clear()

    def get_listeners(self) -> Dict[str, int]:
        """Return listener counts by event name."""
        return {name: len(listeners) for name, listeners in self._listeners.items()}

    def remove_all_listeners(self, event_name: Optional[str] = None) -> None:
        if event_name:
            self._listeners.pop(event_name, None)
        else:
            self._listeners.clear()
