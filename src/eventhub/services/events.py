"""Event listing and management.

## Listing

`EventService.list_events` runs the event `ListQueryBuilder` over the
``events`` table joined with each event's creator. When a viewer is known,
the page is annotated with the viewer's favorite flags using one extra
query restricted to the event ids on the page.

## Ownership

Only the creator of an event may update or delete it. The check and the
write are separate statements; a concurrent ownership change between the
two is not guarded against.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.database.models import Event, Favorite, User
from eventhub.errors import BadRequestError, ForbiddenError, NotFoundError
from eventhub.models.event import EventCreate, EventUpdate
from eventhub.query.builder import ListQueryBuilder, Pagination

logger = logging.getLogger(__name__)

EVENTS_PAGE_SIZE = 6


def event_query_builder(max_limit: int | None = None) -> ListQueryBuilder:
    """Query builder for ``GET /api/events``."""
    return ListQueryBuilder(
        filters=[("type", Event.type), ("status", Event.status)],
        search_columns=[Event.name, Event.location, Event.description],
        sort_columns={
            "date": Event.date,
            "name": Event.name,
            "price": Event.price,
            "created_at": Event.created_at,
        },
        default_sort="date",
        default_limit=EVENTS_PAGE_SIZE,
        max_limit=max_limit,
    )


@dataclass
class EventListing:
    """An event with its creator's public info and the viewer's flag."""

    event: Event
    creator_username: str | None = None
    creator_avatar: str | None = None
    is_favorite: bool = False


@dataclass
class EventPage:
    """One page of events."""

    items: list[EventListing]
    pagination: Pagination


class EventService:
    """Event queries and owner-restricted writes.

    Example:
        ```python
        service = EventService(db_session, max_page_size=100)

        page = await service.list_events({"search": "jazz"}, viewer=user)
        listing = await service.create_event(payload, creator=user)
        ```
    """

    def __init__(self, session: AsyncSession, max_page_size: int | None = None):
        self.session = session
        self.builder = event_query_builder(max_page_size)

    def _listing_statement(self):
        return select(Event, User.username, User.avatar).outerjoin(
            User, Event.creator_id == User.id
        )

    async def list_events(
        self,
        params: Mapping[str, Any],
        viewer: User | None = None,
    ) -> EventPage:
        """Search, filter, sort and paginate events."""
        query = self.builder.build(params)

        total = await self.session.scalar(query.count_statement(Event)) or 0
        statement = query.page_statement(self._listing_statement()).order_by(Event.id)
        rows = (await self.session.execute(statement)).all()

        items = [
            EventListing(event=event, creator_username=username, creator_avatar=avatar)
            for event, username, avatar in rows
        ]

        if viewer is not None and items:
            favorite_ids = await self._favorite_ids(
                viewer.id, [item.event.id for item in items]
            )
            for item in items:
                item.is_favorite = item.event.id in favorite_ids

        return EventPage(items=items, pagination=query.pagination(total))

    async def get_event(self, event_id: int, viewer: User | None = None) -> EventListing:
        """Fetch one event with creator info.

        Raises:
            NotFoundError: If the event does not exist
        """
        result = await self.session.execute(
            self._listing_statement().where(Event.id == event_id)
        )
        row = result.first()
        if row is None:
            raise NotFoundError("Event not found")

        event, username, avatar = row
        listing = EventListing(event=event, creator_username=username, creator_avatar=avatar)
        if viewer is not None:
            listing.is_favorite = event_id in await self._favorite_ids(viewer.id, [event_id])
        return listing

    async def create_event(self, payload: EventCreate, creator: User) -> EventListing:
        """Insert an event owned by ``creator``."""
        event = Event(**payload.to_columns(), creator_id=creator.id)
        self.session.add(event)
        await self.session.commit()
        await self.session.refresh(event)

        logger.info(f"User {creator.id} created event {event.id}")
        return EventListing(
            event=event,
            creator_username=creator.username,
            creator_avatar=creator.avatar,
        )

    async def update_event(
        self,
        event_id: int,
        payload: EventUpdate,
        user: User,
    ) -> EventListing:
        """Apply the fields present in ``payload``.

        Raises:
            NotFoundError: If the event does not exist
            ForbiddenError: If ``user`` did not create the event
            BadRequestError: If the payload carries no fields
        """
        event = await self._owned_event(event_id, user, action="update")

        changes = payload.to_columns()
        if not changes:
            raise BadRequestError("No valid fields to update")

        end_date = changes.get("end_date", event.end_date)
        start = changes.get("date", event.date)
        if end_date is not None and start is not None and _naive(end_date) <= _naive(start):
            raise BadRequestError("End date must be after start date")

        for column, value in changes.items():
            setattr(event, column, value)
        await self.session.commit()
        await self.session.refresh(event)

        logger.info(f"User {user.id} updated event {event.id}")
        return await self.get_event(event.id, viewer=user)

    async def delete_event(self, event_id: int, user: User) -> None:
        """Delete an event and, by cascade, its favorites.

        Raises:
            NotFoundError: If the event does not exist
            ForbiddenError: If ``user`` did not create the event
        """
        event = await self._owned_event(event_id, user, action="delete")

        await self.session.delete(event)
        await self.session.commit()
        logger.info(f"User {user.id} deleted event {event_id}")

    async def _owned_event(self, event_id: int, user: User, action: str) -> Event:
        event = await self.session.get(Event, event_id)
        if event is None:
            raise NotFoundError("Event not found")
        if event.creator_id != user.id:
            raise ForbiddenError(f"You are not authorized to {action} this event")
        return event

    async def _favorite_ids(self, user_id: int, event_ids: list[int]) -> set[int]:
        result = await self.session.execute(
            select(Favorite.event_id).where(
                Favorite.user_id == user_id,
                Favorite.event_id.in_(event_ids),
            )
        )
        return set(result.scalars().all())


def _naive(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
