"""Account operations: password login, registration and Google sign-in.

## Google Sign-In Reconciliation

`AuthService.resolve_oauth_identity` maps a Google profile onto a local
account:

1. An account already linked to the Google id is returned as is.
2. An account with the same email gets the Google id attached. Its
   password hash is left untouched, so both sign-in methods keep working.
3. Otherwise a password-less account is created. The username is seeded
   from the display name (or the email's local part). Another request may
   take that username between our lookup and our insert, so a username
   uniqueness violation triggers a retry with ``<seed>_<4 digits>``. Five
   attempts are made in total. Any other integrity error (a duplicate email
   at this point means our lookup is wrong) propagates untouched.
"""

from __future__ import annotations

import logging
import random
import re

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
)

from eventhub.auth.passwords import hash_password, verify_password
from eventhub.auth.session import TokenSigner
from eventhub.database.models import USERNAME_CONSTRAINT, USERNAME_MAX_LENGTH, User
from eventhub.errors import (
    ConflictError,
    InvalidCredentialsError,
    ProvisioningFailedError,
)

logger = logging.getLogger(__name__)

MAX_PROVISIONING_ATTEMPTS = 5
SUFFIX_LENGTH = 5  # "_1234"


class UsernameTakenError(Exception):
    """Insert collided with an existing username."""

    def __init__(self, username: str):
        super().__init__(f"Username already taken: {username}")
        self.username = username


def is_username_conflict(error: IntegrityError) -> bool:
    """Whether an integrity error was raised by the username constraint.

    asyncpg exposes the violated constraint name; SQLite only reports the
    column, as ``UNIQUE constraint failed: users.username``.
    """
    for candidate in (error.orig, getattr(error.orig, "__cause__", None)):
        constraint = getattr(candidate, "constraint_name", None)
        if constraint:
            return constraint == USERNAME_CONSTRAINT
    return "users.username" in str(error.orig)


def username_seed(display_name: str | None, email: str) -> str:
    """Initial username for a new Google account."""
    seed = (display_name or "").strip() or email.split("@", 1)[0]
    return seed[:USERNAME_MAX_LENGTH]


def suffixed_username(seed: str) -> str:
    """Fallback username: whitespace removed, random 4-digit suffix."""
    base = re.sub(r"\s+", "", seed)[: USERNAME_MAX_LENGTH - SUFFIX_LENGTH]
    return f"{base}_{random.randint(1000, 9999)}"


class AuthService:
    """Account operations against the users table.

    Args:
        session: Database session used for lookups and writes
        signer: Token signer used to issue session tokens
        bcrypt_rounds: Cost factor for new password hashes
    """

    def __init__(
        self,
        session: AsyncSession,
        signer: TokenSigner,
        bcrypt_rounds: int = 10,
    ):
        self.session = session
        self.signer = signer
        self.bcrypt_rounds = bcrypt_rounds

    async def get_user(self, user_id: int) -> User | None:
        return await self.session.get(User, user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def get_user_by_google_id(self, google_id: str) -> User | None:
        result = await self.session.execute(
            select(User).where(User.google_id == google_id)
        )
        return result.scalar_one_or_none()

    async def login(self, email: str, password: str) -> tuple[User, str]:
        """Authenticate with email and password.

        Raises:
            InvalidCredentialsError: Unknown email, wrong password, or an
                account that only signs in with Google
        """
        user = await self.get_user_by_email(email)
        if user is None:
            raise InvalidCredentialsError()

        if not user.password_hash:
            raise InvalidCredentialsError("Please log in with Google")

        matches = await run_in_threadpool(verify_password, password, user.password_hash)
        if not matches:
            raise InvalidCredentialsError()

        logger.info(f"User {user.id} logged in")
        return user, self.signer.issue(user.id)

    async def register(self, username: str, email: str, password: str) -> tuple[User, str]:
        """Create a password account and issue its first token.

        Raises:
            ConflictError: If the email or username is already taken
        """
        result = await self.session.execute(
            select(User.id).where(or_(User.email == email, User.username == username))
        )
        if result.first() is not None:
            raise ConflictError("User with this email or username already exists")

        password_hash = await run_in_threadpool(
            hash_password, password, self.bcrypt_rounds
        )
        user = User(username=username, email=email, password_hash=password_hash)
        self.session.add(user)

        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError("User with this email or username already exists") from e

        await self.session.refresh(user)
        logger.info(f"User {user.id} registered")
        return user, self.signer.issue(user.id)

    async def resolve_oauth_identity(
        self,
        provider_id: str,
        email: str,
        display_name: str | None = None,
        avatar_url: str | None = None,
    ) -> User:
        """Find, link or create the account for a Google profile.

        Raises:
            ProvisioningFailedError: If no free username was found
            IntegrityError: For uniqueness violations other than username
        """
        user = await self.get_user_by_google_id(provider_id)
        if user is not None:
            return user

        user = await self.get_user_by_email(email)
        if user is not None:
            user.google_id = provider_id
            await self.session.commit()
            logger.info(f"Linked Google account to existing user {user.id}")
            return user

        seed = username_seed(display_name, email)
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(MAX_PROVISIONING_ATTEMPTS),
                retry=retry_if_exception_type(UsernameTakenError),
            ):
                with attempt:
                    if attempt.retry_state.attempt_number == 1:
                        username = seed
                    else:
                        username = suffixed_username(seed)
                    user = await self._insert_oauth_user(
                        username, email, provider_id, avatar_url
                    )
        except RetryError as e:
            logger.error(
                f"Could not provision Google user after "
                f"{MAX_PROVISIONING_ATTEMPTS} attempts"
            )
            raise ProvisioningFailedError() from e

        logger.info(f"Created user {user.id} from Google sign-in")
        return user

    async def _insert_oauth_user(
        self,
        username: str,
        email: str,
        provider_id: str,
        avatar_url: str | None,
    ) -> User:
        user = User(
            username=username,
            email=email,
            google_id=provider_id,
            avatar=avatar_url,
        )
        self.session.add(user)

        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            if is_username_conflict(e):
                logger.info("Username taken during Google sign-in, retrying")
                raise UsernameTakenError(username) from e
            raise

        await self.session.refresh(user)
        return user
