"""Session management using signed JWT tokens.

Sessions are stateless: the token itself proves who the caller is and
until when. Nothing is stored server-side, so logout only clears the
cookie and a deleted user is caught by the user lookup that follows
verification.

## Token Structure

```json
{
  "sub": "42",
  "iat": 1234567890,
  "exp": 1235172690,
  "type": "session"
}
```

## Security

- Tokens are signed (HS256) with the application secret key
- Tokens expire after a configurable period (default: 7 days)
- Cookies are HTTP-only to prevent XSS access
- Cookies are Secure and SameSite=None over HTTPS, SameSite=Lax otherwise
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from functools import lru_cache

from jose import JWTError, jwt

from eventhub.config import get_settings

logger = logging.getLogger(__name__)

# JWT configuration
ALGORITHM = "HS256"
TOKEN_TYPE = "session"
DEFAULT_MAX_AGE = timedelta(days=7)


class TokenError(Exception):
    """Base exception for session token failures."""

    reason = "invalid"


class InvalidSignatureError(TokenError):
    """Signature mismatch, malformed token or unexpected claims."""


class TokenExpiredError(TokenError):
    """The token is well-formed and signed, but past its expiry."""

    reason = "expired"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenSigner:
    """Issues and verifies session tokens for a user id.

    Example:
        ```python
        signer = TokenSigner(secret_key, max_age=timedelta(days=7))
        token = signer.issue(user.id)
        user_id = signer.verify(token)
        ```
    """

    def __init__(
        self,
        secret_key: str,
        max_age: timedelta = DEFAULT_MAX_AGE,
        algorithm: str = ALGORITHM,
        clock: Callable[[], datetime] | None = None,
    ):
        self._secret_key = secret_key
        self.max_age = max_age
        self.algorithm = algorithm
        self._clock = clock or _utcnow

    def issue(self, user_id: int, expires_delta: timedelta | None = None) -> str:
        """Create a signed session token for a user.

        Args:
            user_id: The user's id
            expires_delta: Custom lifetime (defaults to ``max_age``)

        Returns:
            Signed JWT token string
        """
        now = self._clock()
        expires_at = now + (self.max_age if expires_delta is None else expires_delta)

        payload = {
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            "type": TOKEN_TYPE,
        }

        return jwt.encode(payload, self._secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> int:
        """Verify a session token and return the user id it carries.

        Raises:
            TokenExpiredError: If the token is past its expiry
            InvalidSignatureError: For any other verification failure
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as e:
            logger.debug(f"Session token verification failed: {e}")
            raise InvalidSignatureError("Invalid token") from e

        # Valid up to and including the expiry second
        expires_at = payload.get("exp")
        if not isinstance(expires_at, int) or isinstance(expires_at, bool):
            raise InvalidSignatureError("Token has no expiry")
        if int(self._clock().timestamp()) > expires_at:
            raise TokenExpiredError("Token expired")

        if payload.get("type") != TOKEN_TYPE:
            raise InvalidSignatureError("Invalid token type")

        try:
            return int(payload["sub"])
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidSignatureError("Invalid token payload") from e


@lru_cache
def get_token_signer() -> TokenSigner:
    """Get the token signer configured from settings."""
    settings = get_settings()
    return TokenSigner(
        settings.secret_key,
        max_age=timedelta(seconds=settings.session_max_age_seconds),
    )
