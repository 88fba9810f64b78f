"""Settings for Flux Intake, read from the environment.

Every setting can be given as an environment variable with the ``FLUX_``
prefix (e.g. ``FLUX_UPLOAD_URL``) or in a ``.env`` file. Settings are read
once per process and are immutable afterwards.
"""

import logging
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from fluxintake.errors import ConfigurationError

DEFAULT_API_BASE = "http://localhost:4000"


class Settings(BaseSettings):
    upload_url: str = ""
    upload_preset: Optional[str] = None

    api_base: str = DEFAULT_API_BASE

    auth_userinfo_url: Optional[str] = None
    auth_client_id: Optional[str] = None

    request_timeout: float = 30.0
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="FLUX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    def require_upload_url(self) -> str:
        if not self.upload_url:
            raise ConfigurationError(
                "upload_url",
                "Image upload URL not configured. Set FLUX_UPLOAD_URL in your environment or .env",
            )
        return self.upload_url

    def require_auth_userinfo_url(self) -> str:
        if not self.auth_userinfo_url:
            raise ConfigurationError(
                "auth_userinfo_url",
                "Identity provider not configured. Set FLUX_AUTH_USERINFO_URL in your environment or .env",
            )
        return self.auth_userinfo_url

    @property
    def applications_url(self) -> str:
        base = (self.api_base or DEFAULT_API_BASE).rstrip("/")
        return f"{base}/api/applications"


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings, loaded on first use."""
    return Settings()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Apply the configured level to the ``fluxintake`` loggers."""
    settings = settings or get_settings()
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.getLogger("fluxintake").setLevel(level)


__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "DEFAULT_API_BASE",
]
