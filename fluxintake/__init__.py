"""Flux Intake: validation and submission core for the Flux induction form.

Flux Intake provides:
- A declarative field rule table evaluated with JSON Schema
- A submission state machine with well-defined pipeline states
- An orchestrator that runs validation, image upload and record creation
- An optional identity gate that locks the form until sign-in
- An event stream the view layer can subscribe to

Basic usage:
    >>> from fluxintake import validate_field
    >>> validate_field("email", "a@b.co") is None
    True
    >>> validate_field("email", "a@b")
    'Please enter a valid email address'
"""

__version__ = "0.1.0"
__author__ = "Flux Team"

# Version info
VERSION = (0, 1, 0)

# Core exports
from fluxintake.draft import ApplicationDraft, AuthSession, ImageFile
from fluxintake.runtime import SessionSnapshot, SubmissionOrchestrator
from fluxintake.types import SubmissionState
from fluxintake.validation import validate_all, validate_field
from fluxintake.words import count_words

# Package metadata
__all__ = [
    "__version__",
    "VERSION",
    "ApplicationDraft",
    "AuthSession",
    "ImageFile",
    "SessionSnapshot",
    "SubmissionOrchestrator",
    "SubmissionState",
    "validate_all",
    "validate_field",
    "count_words",
]
