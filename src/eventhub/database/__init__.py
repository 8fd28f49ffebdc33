"""Database module for EventHub.

This module provides:
- SQLAlchemy async engine and session factory (`Database`)
- User, event, favorite and scraped venue models
"""

from eventhub.database.connection import (
    Database,
    get_database,
    get_db_session,
)
from eventhub.database.models import (
    Base,
    Event,
    EventImageType,
    Favorite,
    ScrapedVenue,
    ScrapeRequest,
    User,
)

__all__ = [
    # Connection
    "Database",
    "get_database",
    "get_db_session",
    # Models
    "Base",
    "Event",
    "EventImageType",
    "Favorite",
    "ScrapedVenue",
    "ScrapeRequest",
    "User",
]
