"""Identity gate for the sign-in-first variant of the form.

When an ``AuthGate`` is composed into the orchestrator, nothing can be
edited or submitted until the user signs in, and the ``email`` field is
locked to the signed-in identity.

``OAuthUserInfoGate`` is the concrete gate. The provider popup belongs to
the view layer: it is passed in as ``token_prompt``, an async callable that
runs the popup and returns an access token. The gate then asks the
provider's user-info endpoint who the token belongs to.
"""

import logging
from typing import Awaitable, Callable, Optional, Protocol

import httpx

from fluxintake.config import Settings, get_settings
from fluxintake.draft import AuthSession
from fluxintake.errors import SignInError

logger = logging.getLogger(__name__)

TokenPrompt = Callable[[Optional[str]], Awaitable[str]]
"""Runs the provider popup for the given client id and returns an access token."""


class AuthGate(Protocol):
    async def sign_in(self) -> AuthSession:
        """Run the identity flow and return the signed-in identity."""
        ...


class OAuthUserInfoGate:
    """Signs users in through an OAuth provider's user-info endpoint."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token_prompt: TokenPrompt,
        settings: Optional[Settings] = None,
    ):
        self._http_client = http_client
        self._token_prompt = token_prompt
        self._settings = settings or get_settings()

    async def sign_in(self) -> AuthSession:
        """Obtain a token through the popup and resolve it to an identity.

        Raises:
            ConfigurationError: If the provider endpoint is not configured
            SignInError: If the popup fails or the provider returns no email
            httpx.HTTPError: On transport failures
        """
        userinfo_url = self._settings.require_auth_userinfo_url()

        try:
            token = await self._token_prompt(self._settings.auth_client_id)
        except SignInError:
            raise
        except Exception as e:
            raise SignInError(f"Sign-in was not completed: {e}") from e
        if not token:
            raise SignInError("Sign-in was not completed")

        response = await self._http_client.get(
            userinfo_url,
            headers={"Authorization": f"Bearer {token}"},
        )
        if not response.is_success:
            raise SignInError(
                f"Identity provider responded with {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            profile = response.json()
        except ValueError as e:
            raise SignInError("Identity provider returned an unreadable profile") from e

        email = profile.get("email") if isinstance(profile, dict) else None
        if not email:
            raise SignInError("Signed-in account has no email address")

        display_name = profile.get("name") or profile.get("displayName")
        logger.info("Signed in via identity provider")
        return AuthSession(email=email, display_name=display_name)


__all__ = [
    "AuthGate",
    "OAuthUserInfoGate",
    "TokenPrompt",
]
