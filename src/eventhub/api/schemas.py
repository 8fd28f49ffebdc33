"""Response bodies.

Every JSON response carries ``success``. List responses add a
``pagination`` object. Field names follow the frontend's expectations:
columns stay snake_case, computed flags are camelCase.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from eventhub.database.models import ScrapedVenue
from eventhub.models.user import UserPublic, UserSummary
from eventhub.query.builder import Pagination
from eventhub.services.events import EventListing
from eventhub.services.favorites import FavoriteListing


class PaginationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int = Field(alias="totalPages")
    has_more: bool = Field(alias="hasMore")

    @classmethod
    def from_pagination(cls, pagination: Pagination) -> PaginationResponse:
        return cls(
            page=pagination.page,
            limit=pagination.limit,
            total=pagination.total,
            total_pages=pagination.total_pages,
            has_more=pagination.has_more,
        )


class EventResponse(BaseModel):
    """An event as returned to clients.

    ``image`` is the primary image URL and ``images`` lists every URL, so
    rows with a legacy list of images render the same as single-image rows.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str
    type: str
    description: str | None
    date: datetime
    end_date: datetime | None
    location: str
    capacity: int
    price: float
    status: str
    image: str | None
    images: list[str]
    creator_id: int | None
    creator_username: str | None
    creator_avatar: str | None
    created_at: datetime | None
    updated_at: datetime | None
    is_favorite: bool = Field(default=False, alias="isFavorite")
    favorited_at: datetime | None = None

    @classmethod
    def from_listing(cls, listing: EventListing) -> EventResponse:
        event = listing.event
        image = event.image
        return cls(
            id=event.id,
            name=event.name,
            type=event.type,
            description=event.description,
            date=event.date,
            end_date=event.end_date,
            location=event.location,
            capacity=event.capacity,
            price=float(event.price or 0),
            status=event.status,
            image=image.primary if image else None,
            images=image.urls if image else [],
            creator_id=event.creator_id,
            creator_username=listing.creator_username,
            creator_avatar=listing.creator_avatar,
            created_at=event.created_at,
            updated_at=event.updated_at,
            is_favorite=listing.is_favorite,
            favorited_at=(
                listing.favorited_at if isinstance(listing, FavoriteListing) else None
            ),
        )


class EventEnvelope(BaseModel):
    success: bool = True
    message: str | None = None
    data: EventResponse


class EventListEnvelope(BaseModel):
    success: bool = True
    data: list[EventResponse]
    pagination: PaginationResponse


class VenueResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str | None
    address: str | None
    phone: str | None
    website: str | None
    city: str | None
    keyword: str | None
    scraped_at: datetime | None

    @classmethod
    def from_venue(cls, venue: ScrapedVenue) -> VenueResponse:
        return cls.model_validate(venue)


class VenueListEnvelope(BaseModel):
    success: bool = True
    data: list[VenueResponse]
    pagination: PaginationResponse


class ScrapeTriggerEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    sheet_url: str | None = Field(default=None, alias="sheetUrl")
    data: Any = None


class AuthEnvelope(BaseModel):
    """Login and registration response.

    The token is also set as an HTTP-only cookie; it is repeated here for
    clients that send it as a bearer header instead.
    """

    success: bool = True
    message: str
    user: UserSummary
    token: str


class MeEnvelope(BaseModel):
    success: bool = True
    user: UserPublic


class MessageEnvelope(BaseModel):
    success: bool = True
    message: str


class ChatMessage(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    """Assistant request.

    ``sessionId`` identifies a guest conversation. For signed-in callers
    the account id is used instead.
    """

    model_config = ConfigDict(populate_by_name=True)

    messages: list[ChatMessage]
    session_id: str | None = Field(default=None, alias="sessionId")


class ChatReply(BaseModel):
    content: str


class ChatChoice(BaseModel):
    message: ChatReply


class ChatEnvelope(BaseModel):
    success: bool = True
    choices: list[ChatChoice]

    @classmethod
    def from_text(cls, text: str) -> ChatEnvelope:
        return cls(choices=[ChatChoice(message=ChatReply(content=text))])


class HealthResponse(BaseModel):
    success: bool = True
    message: str
    version: str
    database: str
    timestamp: datetime
