"""Field validation engine for Flux Intake.

Validation is driven by a declarative rule table: each validated field maps
to a ``FieldRule`` describing its kind (length, pattern, word count or file)
and the message shown when it fails. The table compiles to a Draft 7 JSON
Schema extended with four keywords (``minWords``, ``maxWords``,
``acceptMimeTypes``, ``maxBytes``), and ``jsonschema`` evaluates it.

Adding a validated field means adding a row to ``RULES``.

Usage:
    >>> validate_field("rollNo", "2023UCS001")
    >>> validate_field("rollNo", "short")
    'Roll number must be exactly 10 characters'
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

import jsonschema
from jsonschema import Draft7Validator, validators

from fluxintake.draft import IMAGE_FIELD, ApplicationDraft, ImageFile
from fluxintake.errors import FieldError
from fluxintake.types import FieldErrorCode, RuleKind
from fluxintake.words import count_words

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 1024 * 1024
ACCEPTED_IMAGE_TYPES: Tuple[str, ...] = ("image/jpeg", "image/jpg", "image/png")

PHONE_PATTERN = r"^[0-9+\-() ]{6,20}\Z"
EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+\Z"


@dataclass(frozen=True)
class FieldRule:
    """Declarative validation rule for one field.

    Attributes:
        kind: Which family of checks applies
        message: Default message for any failure of this rule
        min_length / max_length: Inclusive character bounds (LENGTH)
        pattern: Regular expression the whole value must match (PATTERN)
        max_words: Inclusive word limit; at least one word is required (WORD_COUNT)
        accept: Allowed MIME types (FILE)
        max_bytes: Inclusive size limit in bytes (FILE)
        messages: Per-code overrides of ``message``
    """
    kind: RuleKind
    message: str
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    max_words: Optional[int] = None
    accept: Optional[Tuple[str, ...]] = None
    max_bytes: Optional[int] = None
    messages: Dict[FieldErrorCode, str] = field(default_factory=dict)

    @property
    def required(self) -> bool:
        """File rules are optional; every other rule requires a value."""
        return self.kind is not RuleKind.FILE

    def message_for(self, code: FieldErrorCode) -> str:
        return self.messages.get(code, self.message)

    def to_schema(self) -> Dict[str, Any]:
        """Compile this rule to a JSON Schema fragment."""
        if self.kind is RuleKind.LENGTH:
            return {"type": "string", "minLength": self.min_length, "maxLength": self.max_length}
        if self.kind is RuleKind.PATTERN:
            return {"type": "string", "pattern": self.pattern}
        if self.kind is RuleKind.WORD_COUNT:
            return {"type": "string", "minWords": 1, "maxWords": self.max_words}
        if self.kind is RuleKind.FILE:
            return {"acceptMimeTypes": list(self.accept or ()), "maxBytes": self.max_bytes}
        raise ValueError(f"Unsupported rule kind: {self.kind}")


def _length(minimum: int, maximum: int, message: str) -> FieldRule:
    return FieldRule(kind=RuleKind.LENGTH, message=message, min_length=minimum, max_length=maximum)


def _words(maximum: int) -> FieldRule:
    return FieldRule(
        kind=RuleKind.WORD_COUNT,
        message="This field is required",
        max_words=maximum,
        messages={FieldErrorCode.TOO_MANY_WORDS: f"Response must not exceed {maximum} words"},
    )


# society and githubProfile are intentionally absent: neither is validated.
RULES: Dict[str, FieldRule] = {
    "name": _length(1, 200, "Name must be between 1 and 200 characters"),
    "rollNo": _length(10, 10, "Roll number must be exactly 10 characters"),
    "branch": _length(1, 200, "Branch must be between 1 and 200 characters"),
    "year": _length(1, 20, "Year must be between 1 and 20 characters"),
    "phone": FieldRule(
        kind=RuleKind.PATTERN,
        message="Phone number must be 6-20 characters with numbers, +, -, (), or spaces",
        pattern=PHONE_PATTERN,
    ),
    "email": FieldRule(
        kind=RuleKind.PATTERN,
        message="Please enter a valid email address",
        pattern=EMAIL_PATTERN,
    ),
    "whyJoin": _words(200),
    "softSkills": _words(100),
    "hardSkills": _words(100),
    "strengths": _words(100),
    "weaknesses": _words(100),
    "residence": _length(1, 200, "Residence must be between 1 and 200 characters"),
    IMAGE_FIELD: FieldRule(
        kind=RuleKind.FILE,
        message="Please select a .jpg, .jpeg, or .png file",
        accept=ACCEPTED_IMAGE_TYPES,
        max_bytes=MAX_IMAGE_BYTES,
        messages={FieldErrorCode.FILE_TOO_LARGE: "Image size must be less than 1MB"},
    ),
}


def _min_words(validator, min_words, instance, schema) -> Iterator[jsonschema.ValidationError]:
    if not validator.is_type(instance, "string"):
        return
    if count_words(instance) < min_words:
        yield jsonschema.ValidationError(f"Expected at least {min_words} word(s)")


def _max_words(validator, max_words, instance, schema) -> Iterator[jsonschema.ValidationError]:
    if not validator.is_type(instance, "string"):
        return
    words = count_words(instance)
    if words > max_words:
        yield jsonschema.ValidationError(f"{words} words exceeds the limit of {max_words}")


def _accept_mime_types(validator, accept, instance, schema) -> Iterator[jsonschema.ValidationError]:
    if instance is None:
        return
    if not isinstance(instance, ImageFile):
        yield jsonschema.ValidationError(f"Expected an image file, got {type(instance).__name__}")
    elif instance.content_type not in accept:
        yield jsonschema.ValidationError(f"{instance.content_type!r} is not one of {accept}")


def _max_bytes(validator, max_bytes, instance, schema) -> Iterator[jsonschema.ValidationError]:
    if isinstance(instance, ImageFile) and instance.size > max_bytes:
        yield jsonschema.ValidationError(f"{instance.size} bytes exceeds the limit of {max_bytes}")


IntakeValidator = validators.extend(
    Draft7Validator,
    {
        "minWords": _min_words,
        "maxWords": _max_words,
        "acceptMimeTypes": _accept_mime_types,
        "maxBytes": _max_bytes,
    },
)


def build_schema(rules: Mapping[str, FieldRule]) -> Dict[str, Any]:
    """Compile a rule table into a JSON Schema for a whole draft."""
    return {
        "type": "object",
        "properties": {name: rule.to_schema() for name, rule in rules.items()},
        "required": [name for name, rule in rules.items() if rule.required],
    }


# Maps the failing JSON Schema keyword to a field error code.
KEYWORD_TO_CODE: Dict[str, FieldErrorCode] = {
    "type": FieldErrorCode.INVALID_TYPE,
    "minLength": FieldErrorCode.TOO_SHORT,
    "maxLength": FieldErrorCode.TOO_LONG,
    "pattern": FieldErrorCode.INVALID_FORMAT,
    "minWords": FieldErrorCode.REQUIRED,
    "maxWords": FieldErrorCode.TOO_MANY_WORDS,
    "acceptMimeTypes": FieldErrorCode.FILE_WRONG_TYPE,
    "maxBytes": FieldErrorCode.FILE_TOO_LARGE,
}


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating a draft against the rule table.

    Attributes:
        is_valid: Whether every rule passed
        errors: Field-level errors (empty if valid), at most one per field
        invalid_fields: Names of the failing fields
    """
    is_valid: bool
    errors: List[FieldError]
    invalid_fields: List[str] = field(default_factory=list)

    def error_map(self) -> Dict[str, str]:
        """Field name -> message for every failing field."""
        return {error.field: error.message for error in self.errors}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "isValid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "invalidFields": self.invalid_fields,
        }


class ValidationEngine:
    """Evaluates a rule table with ``jsonschema``.

    Attributes:
        rules: The field rule table
        schema: The compiled JSON Schema

    Examples:
        >>> engine = ValidationEngine()
        >>> engine.validate_field("year", "2nd Year") is None
        True
        >>> engine.validate_field("year", "").code
        <FieldErrorCode.TOO_SHORT: 'too_short'>
    """

    def __init__(self, rules: Optional[Mapping[str, FieldRule]] = None) -> None:
        """Compile the rule table.

        Raises:
            jsonschema.SchemaError: If a rule compiles to an invalid schema
        """
        self.rules: Dict[str, FieldRule] = dict(RULES if rules is None else rules)
        self.schema = build_schema(self.rules)
        IntakeValidator.check_schema(self.schema)
        self.validator = IntakeValidator(self.schema)
        self._field_validators = {
            name: IntakeValidator(self.schema["properties"][name]) for name in self.rules
        }

    def validate_field(self, field_name: str, value: Any) -> Optional[FieldError]:
        """Validate one value; fields without a rule always pass."""
        field_validator = self._field_validators.get(field_name)
        if field_validator is None:
            return None
        for error in field_validator.iter_errors(value):
            return self._translate_error(error, field_name)
        return None

    def validate(self, data: Union[ApplicationDraft, Mapping[str, Any]]) -> ValidationResult:
        """Validate every ruled field of a draft.

        Only the first failure of each field is kept, matching what the form
        shows next to the field.
        """
        if isinstance(data, ApplicationDraft):
            data = data.values()

        first_errors: Dict[str, FieldError] = {}
        for error in self.validator.iter_errors(dict(data)):
            field_error = self._translate_error(error)
            first_errors.setdefault(field_error.field, field_error)

        # Report fields in rule-table order.
        errors = [first_errors[name] for name in self.rules if name in first_errors]
        if errors:
            logger.debug("Validation failed for fields: %s", ", ".join(e.field for e in errors))
        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            invalid_fields=[e.field for e in errors],
        )

    def _translate_error(
        self,
        error: jsonschema.ValidationError,
        field_name: Optional[str] = None,
    ) -> FieldError:
        """Translate a jsonschema error into a FieldError with the rule's message."""
        if error.validator == "required":
            # "'name' is a required property"
            missing = error.message.split("'")[1] if "'" in error.message else ""
            rule = self.rules.get(missing)
            return FieldError(
                field=missing,
                code=FieldErrorCode.REQUIRED,
                message=rule.message if rule else f"Field '{missing}' is required",
                expected="required field",
            )

        if field_name is None:
            field_name = str(error.path[0]) if error.path else ""
        rule = self.rules[field_name]
        code = KEYWORD_TO_CODE.get(str(error.validator), FieldErrorCode.CUSTOM)
        instance = error.instance

        if code in (FieldErrorCode.TOO_SHORT, FieldErrorCode.TOO_LONG):
            bound = "minimum" if code is FieldErrorCode.TOO_SHORT else "maximum"
            expected: Any = f"{bound} {error.validator_value} characters"
            received: Any = f"{len(instance)} characters"
        elif code is FieldErrorCode.TOO_MANY_WORDS:
            expected = f"maximum {error.validator_value} words"
            received = f"{count_words(instance)} words"
        elif code is FieldErrorCode.FILE_WRONG_TYPE:
            expected = list(error.validator_value)
            received = instance.content_type if isinstance(instance, ImageFile) else type(instance).__name__
        elif code is FieldErrorCode.FILE_TOO_LARGE:
            expected = f"maximum {error.validator_value} bytes"
            received = f"{instance.size} bytes"
        elif code is FieldErrorCode.INVALID_TYPE:
            expected = error.validator_value
            received = type(instance).__name__
        elif code is FieldErrorCode.INVALID_FORMAT:
            expected = f"pattern: {error.validator_value}"
            received = instance
        else:
            expected = None
            received = None

        return FieldError(
            field=field_name,
            code=code,
            message=rule.message_for(code),
            expected=expected,
            received=received,
        )


_default_engine: Optional[ValidationEngine] = None


def default_engine() -> ValidationEngine:
    """Return the shared engine for the built-in rule table."""
    global _default_engine
    if _default_engine is None:
        _default_engine = ValidationEngine()
    return _default_engine


def validate_field(field_name: str, value: Any) -> Optional[str]:
    """Validate one field value; returns the error message or None."""
    error = default_engine().validate_field(field_name, value)
    return error.message if error else None


def validate_all(draft: Union[ApplicationDraft, Mapping[str, Any]]) -> Dict[str, str]:
    """Validate a whole draft; returns only the failing fields."""
    return default_engine().validate(draft).error_map()


__all__ = [
    "FieldRule",
    "RULES",
    "ValidationEngine",
    "ValidationResult",
    "validate_field",
    "validate_all",
    "MAX_IMAGE_BYTES",
    "ACCEPTED_IMAGE_TYPES",
]
