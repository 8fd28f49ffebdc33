"""FastAPI dependencies for authentication.

These dependencies can be used in route handlers to require authentication
and get the current user.

The session token is read from the ``token`` cookie first and from an
``Authorization: Bearer <token>`` header second, so both the browser
frontend and API clients are served.

## Usage

```python
from fastapi import Depends
from eventhub.auth import get_current_user, get_current_user_optional
from eventhub.database import User

@router.get("/me")
async def me(user: User = Depends(get_current_user)):
    return {"id": user.id, "username": user.username}

@router.get("/")
async def list_events(user: User | None = Depends(get_current_user_optional)):
    # Personalize only when the caller is recognized
    ...
```
"""

from __future__ import annotations

import logging

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.auth.service import AuthService
from eventhub.auth.session import TokenError, TokenSigner, get_token_signer
from eventhub.config import get_settings
from eventhub.database.connection import get_db_session
from eventhub.database.models import User
from eventhub.errors import UnauthenticatedError

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def extract_token(request: Request) -> str | None:
    """Return the session token from the cookie, else the bearer header."""
    settings = get_settings()

    token = request.cookies.get(settings.session_cookie_name)
    if token:
        return token

    header = request.headers.get("Authorization", "")
    if header.startswith(BEARER_PREFIX):
        return header[len(BEARER_PREFIX):].strip() or None

    return None


def get_auth_service(
    db: AsyncSession = Depends(get_db_session),
    signer: TokenSigner = Depends(get_token_signer),
) -> AuthService:
    """Build an `AuthService` bound to the request's database session."""
    return AuthService(db, signer, bcrypt_rounds=get_settings().bcrypt_rounds)


async def get_current_user(
    request: Request,
    signer: TokenSigner = Depends(get_token_signer),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """Get the current authenticated user.

    Raises 401 if no token is present, the token is invalid or expired, or
    the user no longer exists. The ``reason`` field of the error tells
    clients whether to re-authenticate because the token expired.
    """
    token = extract_token(request)
    if token is None:
        raise UnauthenticatedError()

    try:
        user_id = signer.verify(token)
    except TokenError as e:
        message = "Token expired." if e.reason == "expired" else "Invalid token."
        raise UnauthenticatedError(message, reason=e.reason) from e

    user = await db.get(User, user_id)
    if user is None:
        logger.warning(f"Token for non-existent user: {user_id}")
        raise UnauthenticatedError("Invalid token. User not found.", reason="invalid")

    request.state.user = user
    return user


async def get_current_user_optional(
    request: Request,
    signer: TokenSigner = Depends(get_token_signer),
    db: AsyncSession = Depends(get_db_session),
) -> User | None:
    """Get the current user if logged in, or None.

    Use this for routes that work with or without authentication. Every
    failure (missing, invalid or expired token, unknown user) yields None.
    """
    request.state.user = None

    token = extract_token(request)
    if token is None:
        return None

    try:
        user_id = signer.verify(token)
    except TokenError:
        return None

    user = await db.get(User, user_id)
    request.state.user = user
    return user
