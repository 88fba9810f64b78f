"""Submission orchestrator for Flux Intake.

This module provides ``SubmissionOrchestrator``, the single owner of a form
session's state: the draft, the field error map, the submission state
machine and, when an identity gate is composed, the signed-in identity.

The view layer reads ``snapshot()`` and dispatches intents: ``edit_field``,
``select_image``, ``check_field``, ``submit``, ``sign_in``,
``dismiss_failure`` and ``reset``. It never mutates session state directly.

On submit the pipeline runs validation, then the image upload (only when an
image is selected and not uploaded yet), then record creation. Collaborator
failures of any kind are caught here and turned into one user-facing
``SubmissionFailure``.

Usage:
    async with create_http_client() as http:
        orchestrator = SubmissionOrchestrator.from_settings(http)
        orchestrator.edit_field("name", "Ada Lovelace")
        ...
        snapshot = await orchestrator.submit()
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, FrozenSet, Optional, Set, TypeVar

import httpx

from fluxintake.auth import AuthGate, OAuthUserInfoGate, TokenPrompt
from fluxintake.clients import ApplicationsApiClient, CloudinaryUploadClient, RecordClient, UploadClient
from fluxintake.config import Settings, get_settings
from fluxintake.draft import IMAGE_FIELD, ApplicationDraft, AuthSession, ImageFile
from fluxintake.errors import (
    CollaboratorError,
    ConfigurationError,
    EditingDisabledError,
    FieldLockedError,
    IntakeError,
    SubmissionFailure,
)
from fluxintake.events import EventEmitter
from fluxintake.state_machine import SubmissionStateMachine
from fluxintake.types import ErrorType, EventType, SubmissionState
from fluxintake.validation import ValidationEngine, default_engine

logger = logging.getLogger(__name__)

T = TypeVar("T")

EMAIL_FIELD = "email"


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a form session for the view layer.

    Attributes:
        session_id: Identifier of the form session
        state: Current submission state
        values: Draft field values, including ``imageFile``
        errors: Field name -> message for fields currently in error
        failure: Message for the last failed attempt or refused submit
        auth_session: Signed-in identity, if any
        auth_failure: Message for the last failed sign-in
        image_url: URL of the uploaded image, empty until an upload succeeds
        locked_fields: Fields the user cannot edit
        can_edit: Whether edits are accepted right now
        can_submit: Whether a submit would start a new attempt
    """
    session_id: str
    state: SubmissionState
    values: Dict[str, Any]
    errors: Dict[str, str]
    failure: Optional[SubmissionFailure]
    auth_session: Optional[AuthSession]
    auth_failure: Optional[SubmissionFailure]
    image_url: str
    locked_fields: FrozenSet[str]
    can_edit: bool
    can_submit: bool

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        values = dict(self.values)
        image = values.get(IMAGE_FIELD)
        if isinstance(image, ImageFile):
            values[IMAGE_FIELD] = {"filename": image.filename, "contentType": image.content_type, "size": image.size}
        result: Dict[str, Any] = {
            "sessionId": self.session_id,
            "state": self.state.value,
            "values": values,
            "errors": dict(self.errors),
            "imageUrl": self.image_url,
            "lockedFields": sorted(self.locked_fields),
            "canEdit": self.can_edit,
            "canSubmit": self.can_submit,
        }
        if self.failure is not None:
            result["failure"] = self.failure.to_dict()
        if self.auth_session is not None:
            result["authSession"] = self.auth_session.to_dict()
        if self.auth_failure is not None:
            result["authFailure"] = self.auth_failure.to_dict()
        return result


class SubmissionOrchestrator:
    """Owns one form session and runs its submission pipeline.

    Attributes:
        session_id: Unique identifier for this form session
        events: Emitter the view layer subscribes to for progress

    Examples:
        >>> class Uploads:
        ...     async def upload(self, image):
        ...         return "https://img.example/1.png"
        >>> class Records:
        ...     async def create(self, payload):
        ...         return None
        >>> orchestrator = SubmissionOrchestrator(Uploads(), Records(), step_timeout=None)
        >>> orchestrator.edit_field("name", "Ada Lovelace")
        >>> orchestrator.snapshot().values["name"]
        'Ada Lovelace'
    """

    def __init__(
        self,
        upload_client: UploadClient,
        record_client: RecordClient,
        auth_gate: Optional[AuthGate] = None,
        engine: Optional[ValidationEngine] = None,
        emitter: Optional[EventEmitter] = None,
        step_timeout: Optional[float] = None,
        session_id: Optional[str] = None,
    ):
        """Initialize the orchestrator.

        Args:
            upload_client: Stores the profile picture and returns its URL
            record_client: Persists the application
            auth_gate: Optional identity gate; when given, the form stays
                locked until sign-in succeeds
            engine: Validation engine; defaults to the built-in rule table
            emitter: Event emitter; a new one is created when omitted
            step_timeout: Seconds allowed for each collaborator call; None
                disables the bound
            session_id: Optional fixed session identifier
        """
        self.session_id = session_id or f"ses_{uuid.uuid4().hex[:16]}"
        self.events = emitter or EventEmitter()
        self._upload_client = upload_client
        self._record_client = record_client
        self._auth_gate = auth_gate
        self._engine = engine or default_engine()
        self._step_timeout = step_timeout
        self._machine = SubmissionStateMachine(session_id=self.session_id, emitter=self.events)

        self._draft = ApplicationDraft()
        self._errors: Dict[str, str] = {}
        self._failure: Optional[SubmissionFailure] = None
        self._auth_session: Optional[AuthSession] = None
        self._auth_failure: Optional[SubmissionFailure] = None
        self._locked: Set[str] = set()
        self._signing_in = False
        self._image_url = ""
        self._uploaded_image: Optional[ImageFile] = None

    @classmethod
    def from_settings(
        cls,
        http_client: httpx.AsyncClient,
        settings: Optional[Settings] = None,
        token_prompt: Optional[TokenPrompt] = None,
        emitter: Optional[EventEmitter] = None,
    ) -> "SubmissionOrchestrator":
        """Compose an orchestrator from the HTTP collaborators.

        Passing ``token_prompt`` selects the sign-in-first form: an
        ``OAuthUserInfoGate`` is composed and the form is locked until
        sign-in. Without it the form submits directly.
        """
        settings = settings or get_settings()
        auth_gate = OAuthUserInfoGate(http_client, token_prompt, settings) if token_prompt else None
        return cls(
            upload_client=CloudinaryUploadClient(http_client, settings),
            record_client=ApplicationsApiClient(http_client, settings),
            auth_gate=auth_gate,
            emitter=emitter,
            step_timeout=settings.request_timeout,
        )

    @property
    def state(self) -> SubmissionState:
        return self._machine.state

    @property
    def state_machine(self) -> SubmissionStateMachine:
        return self._machine

    @property
    def requires_sign_in(self) -> bool:
        """Whether the form is waiting for the identity gate."""
        return self._auth_gate is not None and self._auth_session is None

    def snapshot(self) -> SessionSnapshot:
        """Return a read-only view of the session."""
        return SessionSnapshot(
            session_id=self.session_id,
            state=self._machine.state,
            values=self._draft.values(),
            errors=dict(self._errors),
            failure=self._failure,
            auth_session=self._auth_session,
            auth_failure=self._auth_failure,
            image_url=self._image_url,
            locked_fields=frozenset(self._locked),
            can_edit=self._can_edit(),
            can_submit=self._machine.accepts_submit() and not self.requires_sign_in,
        )

    # Editing

    def edit_field(self, field: str, value: Any) -> None:
        """Update a draft field and clear its current error.

        Raises:
            UnknownFieldError: If the field is not part of the application
            FieldLockedError: If the field is bound to the signed-in identity
            EditingDisabledError: If the form is not editable right now
            TypeError: If the value does not fit the field
        """
        if field == IMAGE_FIELD:
            self.select_image(value)
            return
        self._ensure_editable()
        if field in self._locked:
            raise FieldLockedError(field)
        self._draft.set(field, value)
        self._errors.pop(field, None)
        self._machine.emit(EventType.FIELD_UPDATED, {"field": field})

    def select_image(self, image: Optional[ImageFile]) -> None:
        """Select or clear the profile picture.

        A different image invalidates the URL of any earlier upload.
        """
        self._ensure_editable()
        self._draft.set(IMAGE_FIELD, image)
        self._errors.pop(IMAGE_FIELD, None)
        if image != self._uploaded_image:
            self._image_url = ""
            self._uploaded_image = None
        payload = {"filename": image.filename, "size": image.size} if image else {"cleared": True}
        self._machine.emit(EventType.IMAGE_SELECTED, payload)

    def check_field(self, field: str) -> Optional[str]:
        """Validate a single field now and record the result.

        Raises:
            EditingDisabledError: If the form is not editable right now
        """
        self._ensure_editable()
        error = self._engine.validate_field(field, self._draft[field])
        if error is None:
            self._errors.pop(field, None)
            return None
        self._errors[field] = error.message
        return error.message

    # Submission

    async def submit(self) -> SessionSnapshot:
        """Run the submission pipeline once.

        Ignored while an attempt is in flight or after success. Never raises
        for collaborator failures; they end the attempt in ``failed``. A
        cancelled attempt also ends in ``failed`` before the cancellation
        propagates.
        """
        if not self._machine.accepts_submit():
            logger.info("Ignoring submit for session %s while %s", self.session_id, self.state.value)
            return self.snapshot()

        if self.requires_sign_in:
            self._failure = SubmissionFailure(
                type=ErrorType.AUTH_REQUIRED,
                reason="Please sign in before submitting your application",
            )
            return self.snapshot()

        self._failure = None
        self._machine.transition_to(SubmissionState.VALIDATING)

        result = self._engine.validate(self._draft)
        self._errors = result.error_map()
        if not result.is_valid:
            self._machine.transition_to(
                SubmissionState.IDLE,
                event_type=EventType.VALIDATION_FAILED,
                payload={"fields": result.invalid_fields},
            )
            return self.snapshot()
        self._machine.emit(EventType.VALIDATION_PASSED)

        image = self._draft.image_file
        if image is not None and image != self._uploaded_image:
            self._machine.transition_to(SubmissionState.UPLOADING_IMAGE)
            try:
                image_url = await self._call(self._upload_client.upload(image))
            except asyncio.CancelledError as e:
                self._fail(e, ErrorType.UPLOAD_FAILED)
                raise
            except Exception as e:
                return self._fail(e, ErrorType.UPLOAD_FAILED)
            self._image_url = image_url
            self._uploaded_image = image
            self._machine.emit(EventType.UPLOAD_COMPLETED)
        elif image is not None:
            logger.info("Reusing uploaded image for session %s", self.session_id)

        self._machine.transition_to(SubmissionState.CREATING_RECORD)
        payload = self._draft.to_payload(self._image_url if image is not None else None)
        try:
            await self._call(self._record_client.create(payload))
        except asyncio.CancelledError as e:
            self._fail(e, ErrorType.RECORD_FAILED)
            raise
        except Exception as e:
            return self._fail(e, ErrorType.RECORD_FAILED)

        self._errors = {}
        self._machine.transition_to(SubmissionState.SUCCEEDED)
        logger.info("Application submitted for session %s", self.session_id)
        return self.snapshot()

    def dismiss_failure(self) -> None:
        """Return a failed attempt to ``idle``, keeping the draft."""
        if self.state is not SubmissionState.FAILED:
            return
        self._failure = None
        self._machine.transition_to(SubmissionState.IDLE, event_type=EventType.FAILURE_DISMISSED)

    def reset(self) -> None:
        """Start a fresh application in the same session.

        The signed-in identity survives a reset; ``email`` stays locked to it.

        Raises:
            EditingDisabledError: If a submission attempt is in flight
        """
        if self._machine.is_in_flight():
            raise EditingDisabledError("Cannot reset while a submission is in progress")

        self._draft = ApplicationDraft()
        if self._auth_session is not None:
            self._draft.set(EMAIL_FIELD, self._auth_session.email)
        self._errors = {}
        self._failure = None
        self._image_url = ""
        self._uploaded_image = None

        if self.state is SubmissionState.IDLE:
            self._machine.emit(EventType.SESSION_RESET)
        else:
            self._machine.transition_to(SubmissionState.IDLE)

    # Identity

    async def sign_in(self) -> SessionSnapshot:
        """Run the identity gate once.

        On success the draft's email is overwritten and locked. On failure
        the session stays signed out with a message; there is no retry.
        Calls made while a sign-in is already running are ignored.

        The gate is not bounded by ``step_timeout``: it waits on the user.

        Raises:
            IntakeError: If no identity gate is composed
        """
        if self._auth_gate is None:
            raise IntakeError("This form does not use sign-in")
        if self._auth_session is not None or self._signing_in:
            return self.snapshot()

        self._signing_in = True
        try:
            session = await self._auth_gate.sign_in()
        except Exception as e:
            self._auth_failure = self._translate(e, ErrorType.SIGN_IN_FAILED, prefix="Sign-in failed")
            logger.warning("Sign-in failed for session %s: %s", self.session_id, self._auth_failure.reason)
            self._machine.emit(EventType.SIGN_IN_FAILED, {"errorType": self._auth_failure.type.value})
            return self.snapshot()
        finally:
            self._signing_in = False

        self._auth_session = session
        self._auth_failure = None
        self._draft.set(EMAIL_FIELD, session.email)
        self._locked.add(EMAIL_FIELD)
        self._errors.pop(EMAIL_FIELD, None)
        if self._failure is not None and self._failure.type is ErrorType.AUTH_REQUIRED:
            self._failure = None
        self._machine.emit(EventType.SIGN_IN_SUCCEEDED)
        return self.snapshot()

    # Internals

    def _can_edit(self) -> bool:
        if self.requires_sign_in:
            return False
        return not self._machine.is_in_flight() and self.state is not SubmissionState.SUCCEEDED

    def _ensure_editable(self) -> None:
        if self.requires_sign_in:
            raise EditingDisabledError("Sign in to edit the application")
        if self._machine.is_in_flight():
            raise EditingDisabledError("The application cannot be edited while it is being submitted")
        if self.state is SubmissionState.SUCCEEDED:
            raise EditingDisabledError("The application was already submitted; reset to start a new one")

    async def _call(self, step: Awaitable[T]) -> T:
        if self._step_timeout is None:
            return await step
        return await asyncio.wait_for(step, timeout=self._step_timeout)

    def _fail(self, error: BaseException, error_type: ErrorType) -> SessionSnapshot:
        self._failure = self._translate(error, error_type, prefix="Submission failed")
        logger.warning("Submission failed for session %s: %s", self.session_id, self._failure.reason)
        self._machine.transition_to(
            SubmissionState.FAILED,
            payload={"errorType": self._failure.type.value},
        )
        return self.snapshot()

    def _translate(self, error: BaseException, error_type: ErrorType, prefix: str) -> SubmissionFailure:
        """Collapse any collaborator exception into one user-facing failure."""
        if isinstance(error, asyncio.CancelledError):
            return SubmissionFailure(
                type=ErrorType.CANCELLED,
                reason=f"{prefix}: the submission was interrupted, please try again",
            )
        if isinstance(error, ConfigurationError):
            return SubmissionFailure(type=ErrorType.CONFIGURATION, reason=f"{prefix}: {error}", retryable=False)
        if isinstance(error, (asyncio.TimeoutError, httpx.TimeoutException)):
            return SubmissionFailure(
                type=ErrorType.TIMEOUT,
                reason=f"{prefix}: the request timed out, please try again",
            )
        if isinstance(error, CollaboratorError):
            return SubmissionFailure(type=error_type, reason=f"{prefix}: {error.message}")
        if isinstance(error, httpx.HTTPError):
            return SubmissionFailure(type=error_type, reason=f"{prefix}: could not reach the server ({error})")
        return SubmissionFailure(type=error_type, reason=f"{prefix}: {str(error) or type(error).__name__}")


__all__ = [
    "SubmissionOrchestrator",
    "SessionSnapshot",
]
