"""Database connection management.

Provides async database access using SQLAlchemy with asyncpg.

The engine and its connection pool are owned by a `Database` object that
the application creates on startup and disposes on shutdown. Request
handlers receive sessions through the `get_db_session` dependency, which
reads the `Database` from ``app.state``. Nothing here is a module-level
global, so tests can build their own `Database` against SQLite.

## Configuration

- DATABASE_URL: Full PostgreSQL connection string
- DATABASE_POOL_SIZE: Connection pool size (default: 10)
- DATABASE_MAX_OVERFLOW: Max overflow connections (default: 10)

## Usage

```python
from eventhub.database import Database

database = Database.from_settings(get_settings())
await database.create_tables()

async with database.session() as session:
    user = await session.get(User, user_id)

await database.close()
```
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from eventhub.config import Settings
from eventhub.database.models import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Async engine and session factory for one database."""

    def __init__(
        self,
        url: str,
        pool_size: int = 10,
        max_overflow: int = 10,
        echo: bool = False,
    ):
        self.url = url

        if url.startswith("sqlite"):
            # In-memory SQLite must share a single connection
            self.engine: AsyncEngine = create_async_engine(
                url,
                echo=echo,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        else:
            self.engine = create_async_engine(
                url,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=True,  # Verify connections before use
                echo=echo,
            )

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> Database:
        return cls(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            echo=settings.database_echo,
        )

    async def create_tables(self) -> None:
        """Create all database tables.

        For development/testing only. Production schemas are managed
        outside the application.
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("Database tables created")

    async def ping(self) -> None:
        """Run a trivial query; raises if the database is unreachable."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def close(self) -> None:
        """Dispose of the connection pool."""
        logger.info("Closing database connection")
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a database session.

        The session is closed when the context exits and rolled back if an
        exception escapes. Transactions are not committed automatically.
        """
        session = self.session_factory()
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_database(request: Request) -> Database:
    """FastAPI dependency returning the application's `Database`."""
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise RuntimeError("Database not initialized")
    return database


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions.

    Usage:
    ```python
    @router.get("/{event_id}")
    async def get_event(event_id: int, db: AsyncSession = Depends(get_db_session)):
        return await db.get(Event, event_id)
    ```
    """
    async with get_database(request).session() as session:
        yield session
