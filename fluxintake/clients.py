"""Remote collaborators used by the submission pipeline.

``UploadClient`` and ``RecordClient`` are the contracts the orchestrator
depends on. The concrete clients below talk HTTP through a shared
``httpx.AsyncClient``:

- ``CloudinaryUploadClient`` posts the image as multipart form data and
  returns the hosted URL.
- ``ApplicationsApiClient`` posts the application record as JSON.

Both are single-shot: no retries, a failed request raises.
"""

import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from fluxintake.config import Settings, get_settings
from fluxintake.draft import ImageFile
from fluxintake.errors import RecordError, UploadError

logger = logging.getLogger(__name__)


class UploadClient(Protocol):
    async def upload(self, image: ImageFile) -> str:
        """Store ``image`` and return its durable URL."""
        ...


class RecordClient(Protocol):
    async def create(self, payload: Dict[str, Any]) -> None:
        """Persist the application payload."""
        ...


def create_http_client(settings: Optional[Settings] = None) -> httpx.AsyncClient:
    """Shared async HTTP client configured with the request timeout."""
    settings = settings or get_settings()
    return httpx.AsyncClient(timeout=settings.request_timeout)


class CloudinaryUploadClient:
    """Uploads profile pictures to an unsigned Cloudinary-style endpoint.

    The upload URL comes from settings and is only required when an image is
    actually uploaded.

    Usage:
        async with create_http_client() as http:
            url = await CloudinaryUploadClient(http).upload(image)
    """

    FILE_FIELD = "file"
    PRESET_FIELD = "upload_preset"

    def __init__(self, http_client: httpx.AsyncClient, settings: Optional[Settings] = None):
        """
        Args:
            http_client: httpx AsyncClient for making HTTP requests
            settings: Application settings; defaults to the process settings
        """
        self._http_client = http_client
        self._settings = settings or get_settings()

    async def upload(self, image: ImageFile) -> str:
        """Upload ``image`` and return ``secure_url`` (or ``url``) from the response.

        Raises:
            ConfigurationError: If no upload URL is configured
            UploadError: On a non-2xx response or a response without a URL
            httpx.HTTPError: On transport failures
        """
        url = self._settings.require_upload_url()

        data: Dict[str, str] = {}
        if self._settings.upload_preset:
            data[self.PRESET_FIELD] = self._settings.upload_preset

        logger.info("Uploading image %s (%d bytes)", image.filename, image.size)
        response = await self._http_client.post(
            url,
            files={self.FILE_FIELD: (image.filename, image.content, image.content_type)},
            data=data,
        )

        if not response.is_success:
            raise UploadError(
                f"Image upload failed: {response.status_code} {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise UploadError(
                "Image upload returned an unreadable response",
                status_code=response.status_code,
                body=response.text,
            ) from e

        image_url = ""
        if isinstance(body, dict):
            image_url = body.get("secure_url") or body.get("url") or ""
        if not image_url:
            raise UploadError(
                "No secure_url returned from the upload service",
                status_code=response.status_code,
                body=response.text,
            )

        logger.info("Image uploaded")
        return image_url


class ApplicationsApiClient:
    """Creates application records on the Flux backend.

    Posts to ``<api_base>/api/applications``.
    """

    def __init__(self, http_client: httpx.AsyncClient, settings: Optional[Settings] = None):
        self._http_client = http_client
        self._settings = settings or get_settings()

    async def create(self, payload: Dict[str, Any]) -> None:
        """Post the application payload as JSON.

        Raises:
            RecordError: On a non-2xx response, carrying the response body
            httpx.HTTPError: On transport failures
        """
        url = self._settings.applications_url
        logger.info("Creating application record at %s", url)
        response = await self._http_client.post(url, json=payload)

        if not response.is_success:
            raise RecordError(
                f"Server responded with {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )

        logger.info("Application record created")


__all__ = [
    "UploadClient",
    "RecordClient",
    "CloudinaryUploadClient",
    "ApplicationsApiClient",
    "create_http_client",
]
