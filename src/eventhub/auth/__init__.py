"""Authentication module for EventHub.

Provides password and Google sign-in plus stateless session tokens.

## Login Flows

Password:
1. POST /api/auth/register or /api/auth/login
2. Credentials are checked against the users table (bcrypt)
3. A session token is issued and set as the ``token`` cookie

Google:
1. GET /api/auth/google redirects to Google's consent screen
2. Google redirects back with an authorization code
3. The code is exchanged and the profile is reconciled with local accounts
4. A session token is issued and set as the ``token`` cookie

## Security

- Passwords are hashed with bcrypt (cost factor >= 10)
- Session tokens are signed JWTs; nothing is stored server-side
- Cookies are HTTP-only, and Secure over HTTPS
"""

from eventhub.auth.dependencies import (
    extract_token,
    get_auth_service,
    get_current_user,
    get_current_user_optional,
)
from eventhub.auth.google import (
    GoogleOAuth,
    GoogleProfile,
    GoogleSignInError,
    get_google_oauth,
)
from eventhub.auth.service import AuthService
from eventhub.auth.session import (
    InvalidSignatureError,
    TokenError,
    TokenExpiredError,
    TokenSigner,
    get_token_signer,
)

__all__ = [
    "AuthService",
    "GoogleOAuth",
    "GoogleProfile",
    "GoogleSignInError",
    "get_google_oauth",
    "InvalidSignatureError",
    "TokenError",
    "TokenExpiredError",
    "TokenSigner",
    "get_token_signer",
    "extract_token",
    "get_auth_service",
    "get_current_user",
    "get_current_user_optional",
]
