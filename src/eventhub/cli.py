"""Command-line interface for EventHub.

## Commands

- ``eventhub serve``: Run the API with uvicorn
- ``eventhub init-db``: Create any missing tables
- ``eventhub check-db``: Connect to the database and report row counts
"""

import argparse
import asyncio
import logging
import sys

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from eventhub.config import get_settings
from eventhub.database.connection import Database
from eventhub.database.models import Event, Favorite, ScrapedVenue, User

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


async def _init_db() -> None:
    database = Database.from_settings(get_settings())
    try:
        await database.create_tables()
    finally:
        await database.close()


async def _check_db() -> dict[str, int]:
    database = Database.from_settings(get_settings())
    try:
        await database.ping()
        counts = {}
        async with database.session() as session:
            for model in (User, Event, Favorite, ScrapedVenue):
                counts[model.__tablename__] = await session.scalar(
                    select(func.count()).select_from(model)
                )
        return counts
    finally:
        await database.close()


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="EventHub - Discover, favorite and manage events"
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", help="Bind address (default: HOST setting)")
    serve_parser.add_argument("--port", type=int, help="Port (default: PORT setting)")
    serve_parser.add_argument(
        "--reload",
        action="store_true",
        help="Reload on code changes (development only)",
    )

    # Database commands
    subparsers.add_parser("init-db", help="Create database tables")
    subparsers.add_parser("check-db", help="Check the database connection")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 0

    settings = get_settings()
    _configure_logging(settings.log_level)

    if args.command == "serve":
        import uvicorn

        uvicorn.run(
            "eventhub.api:create_app",
            factory=True,
            host=args.host or settings.host,
            port=args.port or settings.port,
            reload=args.reload,
            log_level=settings.log_level.lower(),
        )
        return 0

    if args.command == "init-db":
        asyncio.run(_init_db())
        logger.info("Database tables created")
        return 0

    if args.command == "check-db":
        try:
            counts = asyncio.run(_check_db())
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Database check failed: {e}")
            return 1
        for table, count in counts.items():
            print(f"{table}: {count}")
        return 0

    parser.error(f"Unknown command: {args.command}")
    return 2


if __name__ == "__main__":
    sys.exit(main())
