"""Favorite routes. All require a signed-in user."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from eventhub.api.dependencies import get_favorite_service
from eventhub.api.schemas import (
    EventListEnvelope,
    EventResponse,
    MessageEnvelope,
    PaginationResponse,
)
from eventhub.auth.dependencies import get_current_user
from eventhub.database.models import User
from eventhub.services.favorites import FavoriteService

router = APIRouter()


@router.get("/my-favorites", response_model=EventListEnvelope)
async def my_favorites(
    request: Request,
    user: User = Depends(get_current_user),
    service: FavoriteService = Depends(get_favorite_service),
) -> EventListEnvelope:
    """List the user's favorite events, most recently added first."""
    page = await service.list_favorites(user, request.query_params)
    return EventListEnvelope(
        data=[EventResponse.from_listing(item) for item in page.items],
        pagination=PaginationResponse.from_pagination(page.pagination),
    )


@router.post("/{event_id}", response_model=MessageEnvelope, status_code=status.HTTP_201_CREATED)
async def add_favorite(
    event_id: int,
    user: User = Depends(get_current_user),
    service: FavoriteService = Depends(get_favorite_service),
) -> MessageEnvelope:
    await service.add(user, event_id)
    return MessageEnvelope(message="Event added to favorites")


@router.delete("/{event_id}", response_model=MessageEnvelope)
async def remove_favorite(
    event_id: int,
    user: User = Depends(get_current_user),
    service: FavoriteService = Depends(get_favorite_service),
) -> MessageEnvelope:
    await service.remove(user, event_id)
    return MessageEnvelope(message="Event removed from favorites")
