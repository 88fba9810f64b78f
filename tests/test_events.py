"""Unit tests for the session event system.

Tests cover:
- SessionEvent creation and enum normalization
- Serialization to camelCase dicts
- EventEmitter subscriptions, unsubscriptions and error isolation
"""

import logging
from datetime import datetime, timezone

import pytest

from fluxintake.events import EventEmitter, SessionEvent
from fluxintake.types import EventType, SubmissionState


def make_event(event_id="evt_001", type=EventType.FIELD_UPDATED, payload=None):
    return SessionEvent(
        event_id=event_id,
        type=type,
        session_id="ses_001",
        ts=datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc),
        state=SubmissionState.IDLE,
        payload=payload,
    )


class TestSessionEventCreation:
    """Test SessionEvent construction."""

    def test_create_event(self):
        event = make_event(payload={"field": "name"})
        assert event.type == EventType.FIELD_UPDATED
        assert event.payload == {"field": "name"}

    def test_string_enums_are_normalized(self):
        event = SessionEvent(
            event_id="evt_002",
            type="upload.completed",
            session_id="ses_001",
            ts=datetime.now(timezone.utc),
            state="creating_record",
        )
        assert event.type is EventType.UPLOAD_COMPLETED
        assert event.state is SubmissionState.CREATING_RECORD

    def test_event_is_immutable(self):
        event = make_event()
        with pytest.raises(AttributeError):
            event.event_id = "evt_999"


class TestEventSerialization:
    """Test to_dict."""

    def test_to_dict(self):
        data = make_event(payload={"field": "name"}).to_dict()
        assert data == {
            "eventId": "evt_001",
            "type": "field.updated",
            "sessionId": "ses_001",
            "ts": "2026-10-16T12:00:00+00:00",
            "state": "idle",
            "payload": {"field": "name"},
        }

    def test_to_dict_without_payload(self):
        assert "payload" not in make_event().to_dict()


class TestEventEmitter:
    """Test EventEmitter subscription and dispatch."""

    def test_specific_listener_called(self):
        emitter = EventEmitter()
        calls = []
        emitter.on(EventType.FIELD_UPDATED, calls.append)

        emitter.emit(make_event())
        emitter.emit(make_event(type=EventType.SUBMISSION_STARTED))

        assert [e.type for e in calls] == [EventType.FIELD_UPDATED]

    def test_wildcard_listener_called_for_all(self):
        emitter = EventEmitter()
        calls = []
        emitter.on_any(calls.append)

        emitter.emit(make_event())
        emitter.emit(make_event(type=EventType.SUBMISSION_SUCCEEDED))

        assert len(calls) == 2

    def test_specific_listeners_run_before_wildcards(self):
        emitter = EventEmitter()
        order = []
        emitter.on_any(lambda e: order.append("any"))
        emitter.on(EventType.FIELD_UPDATED, lambda e: order.append("specific"))

        emitter.emit(make_event())

        assert order == ["specific", "any"]

    def test_unsubscribe(self):
        emitter = EventEmitter()
        calls = []
        emitter.on(EventType.FIELD_UPDATED, calls.append)
        emitter.on_any(calls.append)
        emitter.off(EventType.FIELD_UPDATED, calls.append)
        emitter.off_any(calls.append)

        emitter.emit(make_event())

        assert calls == []

    def test_unsubscribe_unknown_listener_is_ignored(self):
        emitter = EventEmitter()
        emitter.off(EventType.FIELD_UPDATED, print)
        emitter.off_any(print)

    def test_listener_exceptions_are_isolated_and_logged(self, caplog):
        """Should log a failing listener and still call the others."""
        emitter = EventEmitter()
        calls = []

        def failing_listener(event):
            raise ValueError("Listener error")

        emitter.on(EventType.FIELD_UPDATED, failing_listener)
        emitter.on(EventType.FIELD_UPDATED, calls.append)

        with caplog.at_level(logging.ERROR, logger="fluxintake.events"):
            emitter.emit(make_event())

        assert len(calls) == 1
        assert "Event listener failed for field.updated" in caplog.text

    def test_listener_count_and_clear(self):
        emitter = EventEmitter()
        emitter.on(EventType.FIELD_UPDATED, print)
        emitter.on(EventType.SUBMISSION_FAILED, print)
        emitter.on_any(print)

        assert emitter.listener_count(EventType.FIELD_UPDATED) == 1
        assert emitter.listener_count() == 3

        emitter.clear()
        assert emitter.listener_count() == 0
