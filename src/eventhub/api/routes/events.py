"""Event routes.

Listing and reading events works without an account; signed-in callers
additionally get their ``isFavorite`` flags. Creating requires an account,
and only an event's creator may change or delete it.

## Query Parameters (GET /api/events)

- page, limit: Pagination (defaults 1 and 6)
- search: Substring match on name, location and description
- type, status: Exact filters
- sort: date, name, price or created_at (default date)
- order: ASC or DESC (default ASC)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from eventhub.api.dependencies import get_event_service
from eventhub.api.schemas import (
    EventEnvelope,
    EventListEnvelope,
    EventResponse,
    MessageEnvelope,
    PaginationResponse,
)
from eventhub.auth.dependencies import get_current_user, get_current_user_optional
from eventhub.database.models import User
from eventhub.models.event import EventCreate, EventUpdate
from eventhub.services.events import EventService

router = APIRouter()


@router.get("", response_model=EventListEnvelope)
async def list_events(
    request: Request,
    user: User | None = Depends(get_current_user_optional),
    service: EventService = Depends(get_event_service),
) -> EventListEnvelope:
    """List events with search, filters, sorting and pagination."""
    page = await service.list_events(request.query_params, viewer=user)
    return EventListEnvelope(
        data=[EventResponse.from_listing(item) for item in page.items],
        pagination=PaginationResponse.from_pagination(page.pagination),
    )


@router.get("/{event_id}", response_model=EventEnvelope)
async def get_event(
    event_id: int,
    user: User | None = Depends(get_current_user_optional),
    service: EventService = Depends(get_event_service),
) -> EventEnvelope:
    listing = await service.get_event(event_id, viewer=user)
    return EventEnvelope(data=EventResponse.from_listing(listing))


@router.post("", response_model=EventEnvelope, status_code=status.HTTP_201_CREATED)
async def create_event(
    payload: EventCreate,
    user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
) -> EventEnvelope:
    listing = await service.create_event(payload, creator=user)
    return EventEnvelope(
        message="Event created successfully",
        data=EventResponse.from_listing(listing),
    )


@router.put("/{event_id}", response_model=EventEnvelope)
async def update_event(
    event_id: int,
    payload: EventUpdate,
    user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
) -> EventEnvelope:
    """Update an event. Only fields present in the body are changed."""
    listing = await service.update_event(event_id, payload, user)
    return EventEnvelope(
        message="Event updated successfully",
        data=EventResponse.from_listing(listing),
    )


@router.delete("/{event_id}", response_model=MessageEnvelope)
async def delete_event(
    event_id: int,
    user: User = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
) -> MessageEnvelope:
    await service.delete_event(event_id, user)
    return MessageEnvelope(message="Event deleted successfully")
