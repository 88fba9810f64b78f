"""Unit tests for the application draft and image handle."""

import pytest

from fluxintake.draft import ALL_FIELDS, TEXT_FIELDS, ApplicationDraft, AuthSession, ImageFile
from fluxintake.errors import UnknownFieldError


class TestDraftDefaults:
    """Test the declared field set and defaults."""

    def test_text_fields_default_to_empty_string(self):
        draft = ApplicationDraft()
        for field in TEXT_FIELDS:
            if field == "society":
                continue
            assert draft[field] == ""

    def test_society_defaults_to_flux(self):
        assert ApplicationDraft()["society"] == "Flux"

    def test_image_defaults_to_none(self):
        assert ApplicationDraft().image_file is None

    def test_iterates_declared_fields(self):
        assert list(ApplicationDraft()) == list(ALL_FIELDS)


class TestDraftShape:
    """Test that the draft keeps its declared shape."""

    def test_unknown_field_rejected_on_set(self):
        with pytest.raises(UnknownFieldError):
            ApplicationDraft().set("nickname", "ada")

    def test_unknown_field_rejected_on_get(self):
        with pytest.raises(UnknownFieldError):
            ApplicationDraft()["nickname"]

    def test_none_rejected_for_text_field(self):
        with pytest.raises(TypeError):
            ApplicationDraft().set("name", None)

    def test_non_image_rejected_for_image_field(self):
        with pytest.raises(TypeError):
            ApplicationDraft().set("imageFile", b"bytes")

    def test_image_can_be_cleared(self, png_image):
        draft = ApplicationDraft(imageFile=png_image)
        draft.set("imageFile", None)
        assert draft.image_file is None


class TestPayload:
    """Test building the record payload."""

    def test_payload_has_text_fields_only(self, valid_draft, png_image):
        valid_draft.set("imageFile", png_image)
        payload = valid_draft.to_payload()
        assert set(payload) == set(TEXT_FIELDS)
        assert "imageUrl" not in payload

    def test_payload_includes_image_url_when_uploaded(self, valid_draft):
        payload = valid_draft.to_payload("https://img.example/me.png")
        assert payload["imageUrl"] == "https://img.example/me.png"


class TestImageFile:
    """Test the image handle."""

    def test_size(self, png_image):
        assert png_image.size == 1024

    def test_from_path_guesses_type(self, tmp_path):
        path = tmp_path / "avatar.jpg"
        path.write_bytes(b"\xff\xd8\xff")
        image = ImageFile.from_path(path)
        assert image.filename == "avatar.jpg"
        assert image.content_type == "image/jpeg"
        assert image.size == 3

    def test_from_path_unknown_extension(self, tmp_path):
        path = tmp_path / "avatar.unknownext"
        path.write_bytes(b"x")
        assert ImageFile.from_path(path).content_type == "application/octet-stream"

    def test_repr_hides_content(self, png_image):
        assert "content=" not in repr(png_image)


class TestAuthSession:
    def test_to_dict(self):
        session = AuthSession(email="ada@flux.dev", display_name="Ada")
        assert session.to_dict() == {"email": "ada@flux.dev", "displayName": "Ada"}

    def test_to_dict_without_name(self):
        assert AuthSession(email="ada@flux.dev").to_dict() == {"email": "ada@flux.dev"}
