"""Submission state machine for Flux Intake.

This module holds the transition table for the submission pipeline and the
state machine that enforces it:

- Enforces valid transitions between states
- Tracks the current state of the session
- Emits a typed event for every transition and notable action
- Keeps the ordered event list as an audit trail

Usage:
    >>> from fluxintake.state_machine import SubmissionStateMachine
    >>> sm = SubmissionStateMachine(session_id="ses_123")
    >>> sm.state
    <SubmissionState.IDLE: 'idle'>
    >>> sm.transition_to(SubmissionState.VALIDATING)
    >>> sm.state
    <SubmissionState.VALIDATING: 'validating'>
    >>> len(sm.get_events())
    1
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, List, Optional, Set

from fluxintake.events import EventEmitter, SessionEvent
from fluxintake.types import EventType, SubmissionState

logger = logging.getLogger(__name__)


class InvalidStateTransitionError(Exception):
    """Raised when attempting a transition the table does not allow.

    Attributes:
        current_state: The state before the attempted transition
        target_state: The state that was attempted
    """

    def __init__(self, current_state: SubmissionState, target_state: SubmissionState, message: str):
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(message)


# Default event emitted when entering each state. Transitions back to IDLE
# carry their own event type (validation failed, failure dismissed, reset).
STATE_TO_EVENT_TYPE: Dict[SubmissionState, EventType] = {
    SubmissionState.IDLE: EventType.SESSION_RESET,
    SubmissionState.VALIDATING: EventType.SUBMISSION_STARTED,
    SubmissionState.UPLOADING_IMAGE: EventType.UPLOAD_STARTED,
    SubmissionState.CREATING_RECORD: EventType.RECORD_STARTED,
    SubmissionState.SUCCEEDED: EventType.SUBMISSION_SUCCEEDED,
    SubmissionState.FAILED: EventType.SUBMISSION_FAILED,
}


VALID_TRANSITIONS: Dict[SubmissionState, Set[SubmissionState]] = {
    SubmissionState.IDLE: {
        SubmissionState.VALIDATING,
    },
    SubmissionState.VALIDATING: {
        SubmissionState.IDLE,
        SubmissionState.UPLOADING_IMAGE,
        SubmissionState.CREATING_RECORD,
    },
    SubmissionState.UPLOADING_IMAGE: {
        SubmissionState.CREATING_RECORD,
        SubmissionState.FAILED,
    },
    SubmissionState.CREATING_RECORD: {
        SubmissionState.SUCCEEDED,
        SubmissionState.FAILED,
    },
    # Retry goes straight back to validation; dismissing returns to idle.
    SubmissionState.FAILED: {
        SubmissionState.VALIDATING,
        SubmissionState.IDLE,
    },
    # Only a full session reset leaves a successful submission.
    SubmissionState.SUCCEEDED: {
        SubmissionState.IDLE,
    },
}

# States from which a submit request is accepted.
SUBMITTABLE_STATES: FrozenSet[SubmissionState] = frozenset({
    SubmissionState.IDLE,
    SubmissionState.FAILED,
})

# States in which a submission attempt is in flight.
IN_FLIGHT_STATES: FrozenSet[SubmissionState] = frozenset({
    SubmissionState.VALIDATING,
    SubmissionState.UPLOADING_IMAGE,
    SubmissionState.CREATING_RECORD,
})


@dataclass
class SubmissionStateMachine:
    """State machine for one form session.

    Attributes:
        session_id: Unique identifier for the form session
        state: Current state
        emitter: Optional emitter notified of every event

    Examples:
        >>> sm = SubmissionStateMachine(session_id="ses_123")
        >>> sm.can_transition_to(SubmissionState.VALIDATING)
        True
        >>> sm.can_transition_to(SubmissionState.CREATING_RECORD)
        False
    """

    session_id: str
    state: SubmissionState = SubmissionState.IDLE
    emitter: Optional[EventEmitter] = field(default=None, repr=False)
    _events: List[SessionEvent] = field(default_factory=list, init=False, repr=False)

    def can_transition_to(self, target_state: SubmissionState) -> bool:
        """Check if a transition to ``target_state`` is allowed."""
        return target_state in VALID_TRANSITIONS.get(self.state, set())

    def accepts_submit(self) -> bool:
        """Whether a submit request may start a new attempt now."""
        return self.state in SUBMITTABLE_STATES

    def is_in_flight(self) -> bool:
        """Whether a submission attempt is currently running."""
        return self.state in IN_FLIGHT_STATES

    def transition_to(
        self,
        target_state: SubmissionState,
        event_type: Optional[EventType] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Move to ``target_state`` and emit the matching event.

        Args:
            target_state: The state to transition to
            event_type: Overrides the default event for the target state
            payload: Extra event data merged with the from/to states

        Raises:
            InvalidStateTransitionError: If the transition is not allowed
        """
        if not self.can_transition_to(target_state):
            allowed = ", ".join(sorted(s.value for s in VALID_TRANSITIONS[self.state]))
            raise InvalidStateTransitionError(
                current_state=self.state,
                target_state=target_state,
                message=(
                    f"Invalid state transition: cannot transition from "
                    f"'{self.state.value}' to '{target_state.value}'. "
                    f"Valid transitions from '{self.state.value}' are: {allowed}"
                ),
            )

        old_state = self.state
        self.state = target_state
        logger.debug("Session %s: %s -> %s", self.session_id, old_state.value, target_state.value)

        transition_payload: Dict[str, Any] = {"from_state": old_state.value, "to_state": target_state.value}
        if payload:
            transition_payload.update(payload)
        self.emit(event_type or STATE_TO_EVENT_TYPE[target_state], transition_payload)

    def emit(self, event_type: EventType, payload: Optional[Dict[str, Any]] = None) -> SessionEvent:
        """Record an event in the current state and notify the emitter."""
        event = SessionEvent(
            event_id=f"evt_{uuid.uuid4().hex[:16]}",
            type=event_type,
            session_id=self.session_id,
            ts=datetime.now(timezone.utc),
            state=self.state,
            payload=payload,
        )
        self._events.append(event)
        if self.emitter is not None:
            self.emitter.emit(event)
        return event

    def get_events(self) -> List[SessionEvent]:
        """All events in chronological order."""
        return list(self._events)

    def state_history(self) -> List[SubmissionState]:
        """Initial state followed by every state entered, in order."""
        history: List[SubmissionState] = []
        for event in self._events:
            if not event.payload or "to_state" not in event.payload:
                continue
            if not history:
                history.append(SubmissionState(event.payload["from_state"]))
            history.append(SubmissionState(event.payload["to_state"]))
        return history or [self.state]


__all__ = [
    "SubmissionStateMachine",
    "InvalidStateTransitionError",
    "VALID_TRANSITIONS",
    "SUBMITTABLE_STATES",
    "IN_FLIGHT_STATES",
]
