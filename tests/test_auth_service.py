"""Tests for password login, registration and Google account reconciliation."""

import re
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from eventhub.auth.passwords import hash_password, verify_password
from eventhub.auth.service import (
    MAX_PROVISIONING_ATTEMPTS,
    AuthService,
    suffixed_username,
    username_seed,
)
from eventhub.database import User
from eventhub.errors import (
    ConflictError,
    InvalidCredentialsError,
    ProvisioningFailedError,
)


async def count_users(session) -> int:
    return await session.scalar(select(func.count()).select_from(User))


class TestPasswords:
    """Tests for bcrypt hashing helpers."""

    def test_hash_and_verify(self):
        password_hash = hash_password("secret123")
        assert password_hash.startswith("$2b$10$")
        assert verify_password("secret123", password_hash) is True
        assert verify_password("wrong", password_hash) is False

    def test_verify_against_non_bcrypt_value(self):
        assert verify_password("secret123", "plain-text") is False


class TestLogin:
    """Tests for AuthService.login."""

    async def test_success(self, auth_service: AuthService, password_user: User):
        user, token = await auth_service.login("alice@example.com", "secret123")

        assert user.id == password_user.id
        assert auth_service.signer.verify(token) == password_user.id

    async def test_wrong_password(self, auth_service: AuthService, password_user: User):
        with pytest.raises(InvalidCredentialsError) as exc_info:
            await auth_service.login("alice@example.com", "nope")
        assert exc_info.value.message == "Invalid email or password"

    async def test_unknown_email_same_error(self, auth_service: AuthService):
        """Unknown emails are indistinguishable from wrong passwords."""
        with pytest.raises(InvalidCredentialsError) as exc_info:
            await auth_service.login("nobody@example.com", "secret123")
        assert exc_info.value.message == "Invalid email or password"
        assert exc_info.value.status_code == 401

    async def test_google_only_account(self, auth_service: AuthService, session):
        session.add(User(username="gina", email="gina@example.com", google_id="g-1"))
        await session.commit()

        with pytest.raises(InvalidCredentialsError) as exc_info:
            await auth_service.login("gina@example.com", "anything")
        assert exc_info.value.message == "Please log in with Google"


class TestRegister:
    """Tests for AuthService.register."""

    async def test_creates_user_and_token(self, auth_service: AuthService):
        user, token = await auth_service.register("bob", "bob@example.com", "secret123")

        assert user.id is not None
        assert user.password_hash != "secret123"
        assert verify_password("secret123", user.password_hash)
        assert auth_service.signer.verify(token) == user.id

    async def test_duplicate_email(self, auth_service: AuthService, password_user: User):
        with pytest.raises(ConflictError) as exc_info:
            await auth_service.register("someone", "alice@example.com", "secret123")
        assert exc_info.value.message == "User with this email or username already exists"
        assert exc_info.value.status_code == 400

    async def test_duplicate_username(self, auth_service: AuthService, password_user: User):
        with pytest.raises(ConflictError):
            await auth_service.register("alice", "other@example.com", "secret123")


class TestUsernameHelpers:
    """Tests for username seeding and suffixing."""

    def test_seed_prefers_display_name(self):
        assert username_seed("Jane Doe", "jane@example.com") == "Jane Doe"

    def test_seed_falls_back_to_email_local_part(self):
        assert username_seed(None, "jane.doe@example.com") == "jane.doe"
        assert username_seed("   ", "jane.doe@example.com") == "jane.doe"

    def test_seed_truncated(self):
        assert len(username_seed("x" * 80, "x@example.com")) == 50

    def test_suffix_strips_whitespace(self):
        assert re.fullmatch(r"JaneDoe_\d{4}", suffixed_username("Jane Doe"))

    def test_suffixed_name_fits_column(self):
        assert len(suffixed_username("y" * 50)) == 50


class TestResolveOAuthIdentity:
    """Tests for AuthService.resolve_oauth_identity."""

    async def test_creates_password_less_user(self, auth_service: AuthService):
        user = await auth_service.resolve_oauth_identity(
            "g-123", "jane@example.com", "Jane Doe", "https://example.com/jane.png"
        )

        assert user.username == "Jane Doe"
        assert user.google_id == "g-123"
        assert user.password_hash is None
        assert user.avatar == "https://example.com/jane.png"

    async def test_idempotent_for_known_google_id(self, auth_service: AuthService, session):
        first = await auth_service.resolve_oauth_identity("g-123", "jane@example.com", "Jane Doe")
        second = await auth_service.resolve_oauth_identity("g-123", "jane@example.com", "Jane Doe")

        assert first.id == second.id
        assert await count_users(session) == 1

    async def test_links_existing_email_and_keeps_password(
        self, auth_service: AuthService, password_user: User, session
    ):
        original_hash = password_user.password_hash

        user = await auth_service.resolve_oauth_identity(
            "g-alice", "alice@example.com", "Alice Liddell"
        )

        assert user.id == password_user.id
        assert user.google_id == "g-alice"
        assert user.password_hash == original_hash
        assert await count_users(session) == 1

        # Both sign-in methods keep working
        logged_in, _ = await auth_service.login("alice@example.com", "secret123")
        assert logged_in.id == password_user.id

    async def test_username_collision_retries_with_suffix(
        self, auth_service: AuthService, session
    ):
        session.add(
            User(username="Jane Doe", email="other@example.com", password_hash="x")
        )
        await session.commit()

        user = await auth_service.resolve_oauth_identity(
            "g-jane", "jane@example.com", "Jane Doe"
        )

        assert re.fullmatch(r"JaneDoe_\d{4}", user.username)
        assert user.google_id == "g-jane"

    async def test_gives_up_after_max_attempts(self, auth_service: AuthService, session):
        session.add(User(username="Jane Doe", email="one@example.com", password_hash="x"))
        session.add(User(username="JaneDoe_1111", email="two@example.com", password_hash="x"))
        await session.commit()

        with patch(
            "eventhub.auth.service.suffixed_username", return_value="JaneDoe_1111"
        ) as suffixed:
            with pytest.raises(ProvisioningFailedError) as exc_info:
                await auth_service.resolve_oauth_identity(
                    "g-jane", "jane@example.com", "Jane Doe"
                )

        assert suffixed.call_count == MAX_PROVISIONING_ATTEMPTS - 1
        assert exc_info.value.message == "Failed to create user after multiple retries"
        assert exc_info.value.status_code == 500
        assert await count_users(session) == 2

    async def test_non_username_conflict_is_not_retried(
        self, auth_service: AuthService, session
    ):
        """A duplicate email at insert time propagates on the first attempt."""
        session.add(User(username="taken", email="jane@example.com", password_hash="x"))
        await session.commit()

        with patch.object(auth_service, "get_user_by_email", AsyncMock(return_value=None)), \
             patch("eventhub.auth.service.suffixed_username") as suffixed:
            with pytest.raises(IntegrityError):
                await auth_service.resolve_oauth_identity(
                    "g-jane", "jane@example.com", "Jane Doe"
                )

        suffixed.assert_not_called()
