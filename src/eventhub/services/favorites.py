"""Per-user event favorites."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.database.models import Event, Favorite, User
from eventhub.errors import ConflictError, NotFoundError
from eventhub.query.builder import DESC, ListQueryBuilder
from eventhub.services.events import EventListing, EventPage

logger = logging.getLogger(__name__)

FAVORITES_PAGE_SIZE = 10


def favorite_query_builder(max_limit: int | None = None) -> ListQueryBuilder:
    """Query builder for ``GET /api/favorites/my-favorites``."""
    return ListQueryBuilder(
        sort_columns={"favorited_at": Favorite.created_at},
        default_sort="favorited_at",
        default_order=DESC,
        default_limit=FAVORITES_PAGE_SIZE,
        max_limit=max_limit,
    )


@dataclass
class FavoriteListing(EventListing):
    """An event on a user's favorites list."""

    favorited_at: datetime | None = None


class FavoriteService:
    """Add, remove and list a user's favorite events.

    Example:
        ```python
        service = FavoriteService(db_session)
        await service.add(user, event_id)
        page = await service.list_favorites(user, {"page": "2"})
        ```
    """

    def __init__(self, session: AsyncSession, max_page_size: int | None = None):
        self.session = session
        self.builder = favorite_query_builder(max_page_size)

    async def add(self, user: User, event_id: int) -> None:
        """Mark an event as a favorite.

        Raises:
            NotFoundError: If the event does not exist
            ConflictError: If the event is already a favorite
        """
        if await self.session.get(Event, event_id) is None:
            raise NotFoundError("Event not found")

        if await self._find(user.id, event_id) is not None:
            raise ConflictError("Event is already in your favorites")

        self.session.add(Favorite(user_id=user.id, event_id=event_id))
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError("Event is already in your favorites") from e

        logger.info(f"User {user.id} added favorite {event_id}")

    async def remove(self, user: User, event_id: int) -> None:
        """Remove an event from the favorites.

        Raises:
            NotFoundError: If the event is not a favorite
        """
        favorite = await self._find(user.id, event_id)
        if favorite is None:
            raise NotFoundError("Event is not in your favorites")

        await self.session.delete(favorite)
        await self.session.commit()
        logger.info(f"User {user.id} removed favorite {event_id}")

    async def list_favorites(self, user: User, params: Mapping[str, Any]) -> EventPage:
        """The user's favorite events, most recently added first."""
        query = self.builder.build(params, scope=[Favorite.user_id == user.id])

        total = await self.session.scalar(
            query.count_statement(Favorite.__table__.join(Event.__table__))
        ) or 0

        statement = query.page_statement(
            select(Event, User.username, User.avatar, Favorite.created_at)
            .select_from(Favorite)
            .join(Event, Favorite.event_id == Event.id)
            .outerjoin(User, Event.creator_id == User.id)
        ).order_by(Favorite.id.desc())
        rows = (await self.session.execute(statement)).all()

        items: list[EventListing] = [
            FavoriteListing(
                event=event,
                creator_username=username,
                creator_avatar=avatar,
                is_favorite=True,
                favorited_at=favorited_at,
            )
            for event, username, avatar, favorited_at in rows
        ]
        return EventPage(items=items, pagination=query.pagination(total))

    async def _find(self, user_id: int, event_id: int) -> Favorite | None:
        result = await self.session.execute(
            select(Favorite).where(
                Favorite.user_id == user_id,
                Favorite.event_id == event_id,
            )
        )
        return result.scalar_one_or_none()
