"""Structured error types and exceptions for Flux Intake.

Two families live here:

- Data classes describing errors the view layer renders: ``FieldError`` for a
  single failing field and ``SubmissionFailure`` for the one message shown
  when a submission attempt fails.
- Exceptions raised by collaborators and by the orchestrator for caller
  mistakes. Collaborator exceptions never reach the view; the orchestrator
  translates them into a ``SubmissionFailure``.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from fluxintake.types import ErrorType, FieldErrorCode


@dataclass(frozen=True)
class FieldError:
    """Per-field validation error details.

    Attributes:
        field: Name of the draft field (e.g., "rollNo")
        code: Specific validation error code
        message: Human-readable error description shown next to the field
        expected: Optional - what was expected (bounds, pattern, MIME types)
        received: Optional - what was actually received

    Examples:
        >>> err = FieldError(
        ...     field="rollNo",
        ...     code=FieldErrorCode.TOO_SHORT,
        ...     message="Roll number must be exactly 10 characters",
        ...     expected="minimum 10 characters",
        ...     received="9 characters",
        ... )
        >>> err.field
        'rollNo'
    """
    field: str
    code: FieldErrorCode
    message: str
    expected: Optional[Any] = None
    received: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "field": self.field,
            "code": self.code.value if isinstance(self.code, FieldErrorCode) else self.code,
            "message": self.message,
        }
        if self.expected is not None:
            result["expected"] = self.expected
        if self.received is not None:
            result["received"] = self.received
        return result


@dataclass(frozen=True)
class SubmissionFailure:
    """The single user-facing message for a failed attempt.

    Attributes:
        type: Category of the failure
        reason: Human-readable text, safe to show as-is
        retryable: Whether resubmitting without changes can succeed

    Examples:
        >>> failure = SubmissionFailure(
        ...     type=ErrorType.RECORD_FAILED,
        ...     reason="Submission failed: Server responded with 500: boom",
        ... )
        >>> failure.retryable
        True
    """
    type: ErrorType
    reason: str
    retryable: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "type": self.type.value if isinstance(self.type, ErrorType) else self.type,
            "reason": self.reason,
            "retryable": self.retryable,
        }


class IntakeError(Exception):
    """Base class for all Flux Intake exceptions."""


class ConfigurationError(IntakeError):
    """A setting required by the current step is missing or malformed.

    Fatal to the step that needs the setting, never to the whole session.
    """

    def __init__(self, setting: str, message: Optional[str] = None):
        self.setting = setting
        super().__init__(message or f"Required setting '{setting}' is not configured")


class CollaboratorError(IntakeError):
    """A remote collaborator rejected or failed a request.

    Attributes:
        status_code: HTTP status, when the failure came from a response
        body: Response body text, kept as diagnostic context
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class UploadError(CollaboratorError):
    """The image upload did not produce a usable URL."""


class RecordError(CollaboratorError):
    """The backend did not accept the application record."""


class SignInError(CollaboratorError):
    """The identity provider flow did not produce an identity."""


class UnknownFieldError(IntakeError, KeyError):
    """Raised when addressing a field the draft does not declare."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Unknown application field: '{field}'")

    def __str__(self) -> str:
        return self.args[0]


class FieldLockedError(IntakeError):
    """Raised when editing a field bound to the signed-in identity."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Field '{field}' is locked to the signed-in identity")


class EditingDisabledError(IntakeError):
    """Raised when the form is not editable in the current session state."""


__all__ = [
    "FieldError",
    "SubmissionFailure",
    "IntakeError",
    "ConfigurationError",
    "CollaboratorError",
    "UploadError",
    "RecordError",
    "SignInError",
    "UnknownFieldError",
    "FieldLockedError",
    "EditingDisabledError",
]
