"""Event stream for Flux Intake sessions.

Every state transition and significant action in a form session emits a
typed ``SessionEvent``. The view layer subscribes through an
``EventEmitter`` to follow submission progress without touching session
state. Events are immutable and kept in order on the state machine as an
audit trail of the session.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .types import EventType, SubmissionState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionEvent:
    """A single event in a form session.

    Attributes:
        event_id: Unique event identifier (e.g., "evt_3f2a...")
        type: Event type from EventType enum
        session_id: ID of the form session this event relates to
        ts: UTC timestamp when the event occurred
        state: Submission state after this event
        payload: Optional event-specific data (field name, failure reason, ...)

    Examples:
        >>> from datetime import datetime, timezone
        >>> event = SessionEvent(
        ...     event_id="evt_001",
        ...     type=EventType.FIELD_UPDATED,
        ...     session_id="ses_001",
        ...     ts=datetime.now(timezone.utc),
        ...     state=SubmissionState.IDLE,
        ...     payload={"field": "name"},
        ... )
    """
    event_id: str
    type: EventType
    session_id: str
    ts: datetime
    state: SubmissionState
    payload: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        """Normalize string enums."""
        if isinstance(self.state, str) and not isinstance(self.state, SubmissionState):
            object.__setattr__(self, "state", SubmissionState(self.state))
        if isinstance(self.type, str) and not isinstance(self.type, EventType):
            object.__setattr__(self, "type", EventType(self.type))

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization.

        Timestamp is formatted as an ISO 8601 string.
        """
        result: Dict[str, Any] = {
            "eventId": self.event_id,
            "type": self.type.value,
            "sessionId": self.session_id,
            "ts": self.ts.isoformat(),
            "state": self.state.value,
        }
        if self.payload is not None:
            result["payload"] = self.payload
        return result


EventListener = Callable[[SessionEvent], None]
"""Listener callback; called synchronously when an event is emitted."""


class EventEmitter:
    """Dispatches session events to subscribed listeners.

    Features:
    - Type-specific subscriptions
    - Wildcard subscriptions (all events)
    - Synchronous dispatch in registration order
    - Error isolation: a failing listener is logged and skipped

    Examples:
        >>> emitter = EventEmitter()
        >>> emitter.on(EventType.SUBMISSION_SUCCEEDED, lambda e: print("done"))
        >>> emitter.on_any(lambda e: None)
        >>> emitter.listener_count()
        2
    """

    def __init__(self):
        self._listeners: Dict[EventType, List[EventListener]] = {}
        self._any_listeners: List[EventListener] = []

    def on(self, event_type: EventType, listener: EventListener) -> None:
        """Subscribe to a specific event type."""
        self._listeners.setdefault(event_type, []).append(listener)

    def on_any(self, listener: EventListener) -> None:
        """Subscribe to all event types."""
        self._any_listeners.append(listener)

    def off(self, event_type: EventType, listener: EventListener) -> None:
        """Unsubscribe from a specific event type. Unknown listeners are ignored."""
        listeners = self._listeners.get(event_type, [])
        if listener in listeners:
            listeners.remove(listener)

    def off_any(self, listener: EventListener) -> None:
        """Unsubscribe a wildcard listener. Unknown listeners are ignored."""
        if listener in self._any_listeners:
            self._any_listeners.remove(listener)

    def emit(self, event: SessionEvent) -> None:
        """Dispatch an event to type-specific listeners, then wildcard listeners.

        A listener that raises is logged and does not stop the others.
        """
        for listener in self._listeners.get(event.type, []) + self._any_listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener failed for %s", event.type.value)

    def clear(self) -> None:
        """Remove all event listeners."""
        self._listeners.clear()
        self._any_listeners.clear()

    def listener_count(self, event_type: Optional[EventType] = None) -> int:
        """Count listeners for one type, or all listeners including wildcards."""
        if event_type is not None:
            return len(self._listeners.get(event_type, []))
        return len(self._any_listeners) + sum(len(ls) for ls in self._listeners.values())


__all__ = [
    "SessionEvent",
    "EventType",
    "EventListener",
    "EventEmitter",
]
