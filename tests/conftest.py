"""Pytest fixtures for EventHub tests.

This module provides test fixtures that ensure:
1. No external services are contacted (Google, n8n webhooks)
2. Every test gets its own in-memory SQLite database
3. Isolated test environment with controlled configuration
"""

import os
from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio

# Set test environment BEFORE importing application modules
# This ensures no real services are contacted during test collection
os.environ.setdefault("SECRET_KEY", "test-secret-key-at-least-32-characters-long")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "10")
os.environ.pop("N8N_WEBHOOK_URL", None)
os.environ.pop("N8N_AI_AGENT_URL", None)

from eventhub.api import create_app
from eventhub.auth.google import get_google_oauth
from eventhub.auth.passwords import hash_password
from eventhub.auth.service import AuthService
from eventhub.auth.session import TokenSigner, get_token_signer
from eventhub.config import get_settings
from eventhub.database import Database, Event, User
from eventhub.models.event import SingleImage

TEST_SECRET = "test-secret-key-at-least-32-characters-long"


# =============================================================================
# Test Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset cached settings and clients before each test."""
    for cached in (get_settings, get_token_signer, get_google_oauth):
        cached.cache_clear()
    yield
    for cached in (get_settings, get_token_signer, get_google_oauth):
        cached.cache_clear()


@pytest.fixture
def signer() -> TokenSigner:
    return TokenSigner(TEST_SECRET)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def database():
    """Fresh in-memory database with all tables."""
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.create_tables()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def session(database: Database):
    async with database.session() as session:
        yield session


@pytest.fixture
def auth_service(session, signer: TokenSigner) -> AuthService:
    return AuthService(session, signer, bcrypt_rounds=10)


@pytest_asyncio.fixture
async def password_user(session) -> User:
    """A user who registered with a password ("secret123")."""
    user = User(
        username="alice",
        email="alice@example.com",
        password_hash=hash_password("secret123"),
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest.fixture
def make_event():
    """Factory for unsaved events with sensible defaults."""

    def factory(creator: User | None = None, **overrides) -> Event:
        values = {
            "name": "Jazz Night",
            "type": "concert",
            "description": "Live jazz downtown",
            "date": datetime(2030, 6, 1, 20, 0, tzinfo=timezone.utc),
            "location": "Blue Note, Paris",
            "capacity": 100,
            "price": 25.0,
            "status": "upcoming",
            "image": SingleImage("https://example.com/jazz.png"),
            "creator_id": creator.id if creator else None,
        }
        values.update(overrides)
        return Event(**values)

    return factory


# =============================================================================
# API Fixtures
# =============================================================================


@pytest.fixture
def app(database: Database):
    """Application wired to the test database.

    httpx's ASGI transport does not run the lifespan, so the database is
    attached to ``app.state`` here.
    """
    application = create_app(database=database)
    application.state.database = database
    return application


@pytest_asyncio.fixture
async def client(app):
    """HTTP client talking to the app in-process."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


@pytest.fixture
def register(client: httpx.AsyncClient):
    """Register an account through the API and return its bearer headers.

    The session cookie set by registration is dropped so that each request
    authenticates only with the headers it passes.
    """

    async def factory(username: str, email: str, password: str = "secret123") -> dict[str, str]:
        response = await client.post(
            "/api/auth/register",
            json={"username": username, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        client.cookies.clear()
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return factory


@pytest.fixture
def expired_token() -> str:
    """Token signed with the application key, expired ten seconds ago."""
    return get_token_signer().issue(1, expires_delta=timedelta(seconds=-10))
