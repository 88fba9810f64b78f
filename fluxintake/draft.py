"""Application draft, image handle and identity records.

The draft holds exactly the declared application fields. Text fields always
hold strings (empty by default); ``imageFile`` holds an ``ImageFile`` or
``None``. Field names are the wire names used by the record endpoint.
"""

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple, Union

from fluxintake.errors import UnknownFieldError

TEXT_FIELDS: Tuple[str, ...] = (
    "name",
    "rollNo",
    "branch",
    "year",
    "phone",
    "email",
    "society",
    "whyJoin",
    "softSkills",
    "hardSkills",
    "strengths",
    "weaknesses",
    "githubProfile",
    "residence",
)

IMAGE_FIELD = "imageFile"

ALL_FIELDS: Tuple[str, ...] = TEXT_FIELDS + (IMAGE_FIELD,)

DEFAULT_VALUES: Dict[str, str] = {
    "society": "Flux",
}


@dataclass(frozen=True)
class ImageFile:
    """A selected profile picture.

    Attributes:
        filename: Original file name, sent along with the upload
        content_type: MIME type (e.g., "image/png")
        content: Raw file bytes

    Examples:
        >>> img = ImageFile(filename="me.png", content_type="image/png", content=b"x" * 10)
        >>> img.size
        10
    """
    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        """Size of the file in bytes."""
        return len(self.content)

    @classmethod
    def from_path(cls, path: Union[str, Path], content_type: Optional[str] = None) -> "ImageFile":
        """Read an image from disk, guessing its MIME type from the name."""
        path = Path(path)
        if content_type is None:
            content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(filename=path.name, content_type=content_type, content=path.read_bytes())

    def __repr__(self) -> str:
        return f"ImageFile(filename={self.filename!r}, content_type={self.content_type!r}, size={self.size})"


@dataclass(frozen=True)
class AuthSession:
    """Identity returned by the identity provider.

    Attributes:
        email: Verified email address of the signed-in user
        display_name: Best-effort display name
    """
    email: str
    display_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {"email": self.email}
        if self.display_name is not None:
            result["displayName"] = self.display_name
        return result


class ApplicationDraft:
    """The in-progress application the user edits.

    Examples:
        >>> draft = ApplicationDraft()
        >>> draft["name"]
        ''
        >>> draft["society"]
        'Flux'
        >>> draft.set("name", "Ada Lovelace")
        >>> draft["name"]
        'Ada Lovelace'
    """

    def __init__(self, **values: Any) -> None:
        self._values: Dict[str, Any] = {field: DEFAULT_VALUES.get(field, "") for field in TEXT_FIELDS}
        self._values[IMAGE_FIELD] = None
        for field, value in values.items():
            self.set(field, value)

    def set(self, field: str, value: Any) -> None:
        """Set a field, keeping its declared shape.

        Raises:
            UnknownFieldError: If ``field`` is not declared
            TypeError: If the value does not match the field's shape
        """
        if field not in self._values:
            raise UnknownFieldError(field)
        if field == IMAGE_FIELD:
            if value is not None and not isinstance(value, ImageFile):
                raise TypeError(f"'{IMAGE_FIELD}' must be an ImageFile or None, got {type(value).__name__}")
        elif not isinstance(value, str):
            raise TypeError(f"Field '{field}' must be a string, got {type(value).__name__}")
        self._values[field] = value

    def __getitem__(self, field: str) -> Any:
        if field not in self._values:
            raise UnknownFieldError(field)
        return self._values[field]

    def __iter__(self) -> Iterator[str]:
        return iter(ALL_FIELDS)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ApplicationDraft):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"ApplicationDraft({self._values!r})"

    @property
    def image_file(self) -> Optional[ImageFile]:
        return self._values[IMAGE_FIELD]

    def values(self) -> Dict[str, Any]:
        """All field values, including ``imageFile``."""
        return dict(self._values)

    def text_values(self) -> Dict[str, str]:
        """The text fields only, in declaration order."""
        return {field: self._values[field] for field in TEXT_FIELDS}

    def to_payload(self, image_url: Optional[str] = None) -> Dict[str, str]:
        """Build the record-creation payload.

        ``imageUrl`` is included only when an upload produced one.
        """
        payload = self.text_values()
        if image_url:
            payload["imageUrl"] = image_url
        return payload


__all__ = [
    "TEXT_FIELDS",
    "IMAGE_FIELD",
    "ALL_FIELDS",
    "ImageFile",
    "AuthSession",
    "ApplicationDraft",
]
