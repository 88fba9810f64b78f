"""Core type definitions for Flux Intake.

This module defines the enums shared across the package:
- SubmissionState: Stages of the submission pipeline
- ErrorType: Categories of user-facing failures
- EventType: Event types for the session event stream
- FieldErrorCode: Validation error codes for individual fields
- RuleKind: Kinds of declarative field rules

These types form the contract between the view layer and the orchestrator.
"""

from enum import Enum


class SubmissionState(str, Enum):
    """Submission pipeline states.

    States follow the transition table in ``fluxintake.state_machine``.
    ``succeeded`` and ``failed`` end an attempt; ``failed`` accepts a retry.
    """
    IDLE = "idle"
    VALIDATING = "validating"
    UPLOADING_IMAGE = "uploading_image"
    CREATING_RECORD = "creating_record"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ErrorType(str, Enum):
    """Categories of failures surfaced to the user.

    Validation errors are not failures; they are shown inline per field.
    Each of these is collapsed into a single message on the session.
    """
    CONFIGURATION = "configuration"
    UPLOAD_FAILED = "upload_failed"
    RECORD_FAILED = "record_failed"
    SIGN_IN_FAILED = "sign_in_failed"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    AUTH_REQUIRED = "auth_required"


class EventType(str, Enum):
    """Event types for the session event stream.

    Every state transition and significant action emits a typed event.
    """
    SESSION_RESET = "session.reset"
    FIELD_UPDATED = "field.updated"
    IMAGE_SELECTED = "image.selected"
    SUBMISSION_STARTED = "submission.started"
    VALIDATION_PASSED = "validation.passed"
    VALIDATION_FAILED = "validation.failed"
    UPLOAD_STARTED = "upload.started"
    UPLOAD_COMPLETED = "upload.completed"
    RECORD_STARTED = "record.started"
    SUBMISSION_SUCCEEDED = "submission.succeeded"
    SUBMISSION_FAILED = "submission.failed"
    FAILURE_DISMISSED = "failure.dismissed"
    SIGN_IN_SUCCEEDED = "sign_in.succeeded"
    SIGN_IN_FAILED = "sign_in.failed"


class FieldErrorCode(str, Enum):
    """Validation error codes for individual field failures."""
    REQUIRED = "required"
    INVALID_TYPE = "invalid_type"
    INVALID_FORMAT = "invalid_format"
    TOO_LONG = "too_long"
    TOO_SHORT = "too_short"
    TOO_MANY_WORDS = "too_many_words"
    FILE_TOO_LARGE = "file_too_large"
    FILE_WRONG_TYPE = "file_wrong_type"
    CUSTOM = "custom"


class RuleKind(str, Enum):
    """Kinds of declarative field rules."""
    LENGTH = "length"
    PATTERN = "pattern"
    WORD_COUNT = "word_count"
    FILE = "file"


__all__ = [
    "SubmissionState",
    "ErrorType",
    "EventType",
    "FieldErrorCode",
    "RuleKind",
]
