"""Shared fixtures for the Flux Intake tests."""

from typing import Any, Dict, List, Optional

import pytest

from fluxintake.draft import ApplicationDraft, AuthSession, ImageFile

VALID_VALUES: Dict[str, str] = {
    "name": "Ada Lovelace",
    "rollNo": "2023UCS001",
    "branch": "CSE",
    "year": "2nd Year",
    "phone": "+91 9876543210",
    "email": "ada@example.com",
    "society": "Flux",
    "whyJoin": "I want to build useful things with the Flux community",
    "softSkills": "communication teamwork leadership",
    "hardSkills": "python rust linux",
    "strengths": "curiosity and persistence",
    "weaknesses": "impatience",
    "githubProfile": "https://github.com/ada",
    "residence": "Delhi, India",
}


@pytest.fixture
def valid_values() -> Dict[str, str]:
    return dict(VALID_VALUES)


@pytest.fixture
def valid_draft() -> ApplicationDraft:
    return ApplicationDraft(**VALID_VALUES)


@pytest.fixture
def png_image() -> ImageFile:
    return ImageFile(filename="me.png", content_type="image/png", content=b"\x89PNG" + b"\x00" * 1020)


@pytest.fixture
def large_image() -> ImageFile:
    return ImageFile(filename="huge.jpg", content_type="image/jpeg", content=b"\xff" * (2 * 1024 * 1024))


class FakeUploadClient:
    """Records uploads; returns a URL or raises a configured error."""

    def __init__(self, url: str = "https://img.example/me.png", error: Optional[Exception] = None):
        self.url = url
        self.error = error
        self.calls: List[ImageFile] = []

    async def upload(self, image: ImageFile) -> str:
        self.calls.append(image)
        if self.error is not None:
            raise self.error
        return self.url


class FakeRecordClient:
    """Records payloads; succeeds or raises the next queued error."""

    def __init__(self, errors: Optional[List[Exception]] = None):
        self.errors = list(errors or [])
        self.calls: List[Dict[str, Any]] = []

    async def create(self, payload: Dict[str, Any]) -> None:
        self.calls.append(payload)
        if self.errors:
            raise self.errors.pop(0)


class FakeAuthGate:
    """Returns a fixed identity or raises a configured error."""

    def __init__(self, session: Optional[AuthSession] = None, error: Optional[Exception] = None):
        self.session = session or AuthSession(email="ada@flux.dev", display_name="Ada")
        self.error = error
        self.calls = 0

    async def sign_in(self) -> AuthSession:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.session


@pytest.fixture
def uploads() -> FakeUploadClient:
    return FakeUploadClient()


@pytest.fixture
def records() -> FakeRecordClient:
    return FakeRecordClient()
