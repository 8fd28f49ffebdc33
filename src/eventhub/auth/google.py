"""Google sign-in.

EventHub only needs to know who the user is, so the client requests the
``openid email profile`` scopes and never stores Google tokens. The
authorization code is exchanged once in the callback, the profile is read,
and the access token is dropped.

## Flow

1. ``GET /api/auth/google`` redirects to ``get_authorization_url(state)``
2. Google redirects back to ``<BACKEND_URL>/api/auth/google/callback``
3. ``exchange_code`` trades the code for an access token
4. ``get_user_info`` returns a ``GoogleProfile`` that is handed to
   ``AuthService.resolve_oauth_identity``

Credentials come from GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET. Without
them ``is_configured`` is False and the routes answer 503.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import httpx

from eventhub.config import get_settings

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

SIGN_IN_SCOPES = ("openid", "email", "profile")


class GoogleSignInError(ValueError):
    """Google rejected a request or returned an unusable profile."""


@dataclass(frozen=True)
class GoogleProfile:
    """The parts of a Google account EventHub keeps."""

    id: str
    email: str
    name: str | None = None
    picture: str | None = None

    @classmethod
    def from_userinfo(cls, data: dict[str, Any]) -> GoogleProfile:
        if not data.get("id") or not data.get("email"):
            raise GoogleSignInError("Google profile is missing an id or email")
        return cls(
            id=str(data["id"]),
            email=data["email"],
            name=data.get("name"),
            picture=data.get("picture"),
        )


class GoogleOAuth:
    """Authorization-code client for Google sign-in.

    Example:
        ```python
        oauth = GoogleOAuth()
        redirect_to = oauth.get_authorization_url(state)

        # in the callback
        token = await oauth.exchange_code(code)
        profile = await oauth.get_user_info(token)
        ```

    Args:
        client_id: OAuth client id, defaults to GOOGLE_CLIENT_ID
        client_secret: OAuth client secret, defaults to GOOGLE_CLIENT_SECRET
        redirect_uri: Callback URL, defaults to ``Settings.google_callback_url``
        transport: httpx transport override, used by tests
    """

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        redirect_uri: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.client_id = client_id or settings.google_client_id
        self.client_secret = client_secret or settings.google_client_secret
        self.redirect_uri = redirect_uri or settings.google_callback_url
        self.timeout = settings.webhook_timeout_seconds
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def get_authorization_url(self, state: str) -> str:
        """URL of Google's consent screen for this app."""
        url = httpx.URL(
            AUTHORIZE_URL,
            params={
                "client_id": self.client_id,
                "redirect_uri": self.redirect_uri,
                "response_type": "code",
                "scope": " ".join(SIGN_IN_SCOPES),
                "state": state,
                "prompt": "select_account",
            },
        )
        return str(url)

    async def exchange_code(self, code: str) -> str:
        """Trade an authorization code for an access token.

        Raises:
            GoogleSignInError: If Google rejects the code
            httpx.HTTPError: If Google cannot be reached
        """
        data = await self._request(
            "POST",
            TOKEN_URL,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": self.redirect_uri,
            },
        )
        token = data.get("access_token")
        if not token:
            raise GoogleSignInError("Token response has no access_token")
        return token

    async def get_user_info(self, access_token: str) -> GoogleProfile:
        """Read the signed-in user's Google profile.

        Raises:
            GoogleSignInError: If the request fails or the profile has no email
            httpx.HTTPError: If Google cannot be reached
        """
        data = await self._request(
            "GET", USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"}
        )
        return GoogleProfile.from_userinfo(data)

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        if not self.is_configured:
            raise GoogleSignInError("Google sign-in is not configured")

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.request(method, url, **kwargs)

        if response.status_code != 200:
            # Body may echo the code or token back; keep it out of the logs
            logger.error(f"Google {method} {url} failed with status {response.status_code}")
            raise GoogleSignInError(f"Google responded with status {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise GoogleSignInError(f"Google returned a non-JSON reply from {url}") from e
        if not isinstance(data, dict):
            raise GoogleSignInError(f"Google returned an unexpected reply from {url}")
        return data


@lru_cache
def get_google_oauth() -> GoogleOAuth:
    """Cached client built from settings."""
    return GoogleOAuth()
