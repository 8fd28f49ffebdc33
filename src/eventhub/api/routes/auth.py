"""Authentication routes.

Handles password registration and login, Google sign-in and session
management.

## Endpoints

1. POST /api/auth/register - Create a password account
2. POST /api/auth/login - Log in with email and password
3. POST /api/auth/logout - Clear the session cookie
4. GET /api/auth/me - Current user info
5. GET /api/auth/google - Redirect to Google's consent screen
6. GET /api/auth/google/callback - Handle the OAuth callback

## Session Management

Sessions are stored in HTTP-only cookies. The session token is a signed JWT
containing the user ID and expiration time. Over HTTPS (directly or behind
a proxy that sets ``X-Forwarded-Proto``) the cookie is ``Secure`` and
``SameSite=None`` so a frontend on another origin can send it; otherwise it
is ``SameSite=Lax``.
"""

from __future__ import annotations

import logging
import secrets

import httpx
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import IntegrityError

from eventhub.auth.dependencies import get_auth_service, get_current_user
from eventhub.auth.google import GoogleOAuth, GoogleSignInError, get_google_oauth
from eventhub.auth.service import AuthService
from eventhub.api.schemas import AuthEnvelope, MeEnvelope, MessageEnvelope
from eventhub.config import get_settings
from eventhub.database.models import User
from eventhub.errors import EventHubError, ServiceUnavailableError
from eventhub.models.user import LoginRequest, RegisterRequest, UserPublic, UserSummary

logger = logging.getLogger(__name__)

router = APIRouter()

OAUTH_STATE_COOKIE = "oauth_state"
OAUTH_STATE_MAX_AGE = 600  # 10 minutes


def _is_secure(request: Request) -> bool:
    forwarded = request.headers.get("X-Forwarded-Proto", "")
    return request.url.scheme == "https" or forwarded.split(",")[0].strip() == "https"


def _cookie_options(request: Request) -> dict:
    secure = _is_secure(request)
    return {
        "httponly": True,
        "secure": secure,
        "samesite": "none" if secure else "lax",
    }


def set_session_cookie(response: Response, request: Request, token: str) -> None:
    """Attach the session token cookie to ``response``."""
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_max_age_seconds,
        **_cookie_options(request),
    )


@router.post("/register", response_model=AuthEnvelope, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    request: Request,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
) -> AuthEnvelope:
    """Create a password account and log it in."""
    user, token = await auth.register(payload.username, payload.email, payload.password)
    set_session_cookie(response, request, token)

    return AuthEnvelope(
        message="User registered successfully",
        user=UserSummary.model_validate(user),
        token=token,
    )


@router.post("/login", response_model=AuthEnvelope)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
) -> AuthEnvelope:
    """Log in with email and password."""
    user, token = await auth.login(payload.email, payload.password)
    set_session_cookie(response, request, token)

    return AuthEnvelope(
        message="Login successful",
        user=UserSummary.model_validate(user),
        token=token,
    )


@router.post("/logout", response_model=MessageEnvelope)
async def logout(request: Request, response: Response) -> MessageEnvelope:
    """Log out by clearing the session cookie.

    Tokens are stateless, so a copy kept by the client stays valid until it
    expires.
    """
    response.delete_cookie(
        key=get_settings().session_cookie_name,
        **_cookie_options(request),
    )
    return MessageEnvelope(message="Logged out successfully")


@router.get("/me", response_model=MeEnvelope)
async def me(user: User = Depends(get_current_user)) -> MeEnvelope:
    """Get the current user's profile."""
    return MeEnvelope(user=UserPublic.model_validate(user))


@router.get("/google")
async def google_login(
    request: Request,
    oauth: GoogleOAuth = Depends(get_google_oauth),
) -> RedirectResponse:
    """Initiate Google sign-in.

    The CSRF state is kept in a short-lived HTTP-only cookie and checked on
    the callback.
    """
    if not oauth.is_configured:
        raise ServiceUnavailableError("Google sign-in is not configured")

    state = secrets.token_urlsafe(32)
    redirect = RedirectResponse(
        url=oauth.get_authorization_url(state=state),
        status_code=status.HTTP_302_FOUND,
    )
    options = _cookie_options(request)
    # Must survive the top-level redirect back from Google
    options["samesite"] = "lax"
    redirect.set_cookie(
        key=OAUTH_STATE_COOKIE,
        value=state,
        max_age=OAUTH_STATE_MAX_AGE,
        **options,
    )
    return redirect


@router.get("/google/callback")
async def google_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    oauth: GoogleOAuth = Depends(get_google_oauth),
    auth: AuthService = Depends(get_auth_service),
) -> RedirectResponse:
    """Handle the Google OAuth callback.

    Exchanges the authorization code, reconciles the Google profile with a
    local account, sets the session cookie and redirects to the frontend.
    Any failure redirects to the login page instead.
    """
    settings = get_settings()
    failure = RedirectResponse(
        url=settings.oauth_failure_redirect, status_code=status.HTTP_302_FOUND
    )
    failure.delete_cookie(OAUTH_STATE_COOKIE)

    expected_state = request.cookies.get(OAUTH_STATE_COOKIE)
    if error or not code:
        logger.warning(f"Google sign-in aborted: {error or 'missing code'}")
        return failure
    if not state or not expected_state or not secrets.compare_digest(state, expected_state):
        logger.warning("Google sign-in rejected: invalid state")
        return failure

    try:
        access_token = await oauth.exchange_code(code)
        profile = await oauth.get_user_info(access_token)
        user = await auth.resolve_oauth_identity(
            provider_id=profile.id,
            email=profile.email,
            display_name=profile.name,
            avatar_url=profile.picture,
        )
    except (GoogleSignInError, httpx.HTTPError, EventHubError, IntegrityError) as e:
        logger.error(f"Google sign-in failed: {e}")
        return failure

    redirect = RedirectResponse(
        url=settings.oauth_success_redirect, status_code=status.HTTP_302_FOUND
    )
    set_session_cookie(redirect, request, auth.signer.issue(user.id))
    redirect.delete_cookie(OAUTH_STATE_COOKIE)

    logger.info(f"User {user.id} logged in with Google")
    return redirect
