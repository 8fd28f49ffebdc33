"""Event models.

Request payloads for creating and updating events, plus the image variant
stored in the ``events.image`` column.

## Image Storage

Newer rows store a single image URL as plain text. Older rows may hold a
JSON array of URLs. The column type in `eventhub.database.models` parses
the raw value once, on load, into one of:

- `SingleImage(url)`
- `ImageList(urls)` (legacy)

Everything above the database layer works with these values only.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    ValidationInfo,
    field_validator,
    model_validator,
)


class EventType(str, Enum):
    """Category of an event."""

    CONFERENCE = "conference"
    CONCERT = "concert"
    WORKSHOP = "workshop"
    MEETUP = "meetup"


class EventStatus(str, Enum):
    """Lifecycle status of an event."""

    UPCOMING = "upcoming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class SingleImage:
    """A single image URL."""

    url: str

    @property
    def primary(self) -> str:
        return self.url

    @property
    def urls(self) -> list[str]:
        return [self.url]


@dataclass(frozen=True)
class ImageList:
    """Legacy list of image URLs stored as a JSON array."""

    items: tuple[str, ...]

    @property
    def primary(self) -> str | None:
        return self.items[0] if self.items else None

    @property
    def urls(self) -> list[str]:
        return list(self.items)


EventImage = SingleImage | ImageList


def parse_event_image(raw: str | None) -> EventImage | None:
    """Parse a raw ``events.image`` value.

    Empty values become None. A value that decodes as a JSON array of
    strings is a legacy `ImageList`; anything else is a `SingleImage`.
    """
    if raw is None:
        return None
    raw = raw.strip()
    if not raw:
        return None

    if raw.startswith("["):
        try:
            decoded = json.loads(raw)
        except ValueError:
            return SingleImage(raw)
        if isinstance(decoded, list):
            return ImageList(tuple(str(item) for item in decoded if item))

    return SingleImage(raw)


def serialize_event_image(image: EventImage | None) -> str | None:
    """Inverse of `parse_event_image`."""
    if image is None:
        return None
    if isinstance(image, SingleImage):
        return image.url
    return json.dumps(list(image.items))


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class EventCreate(BaseModel):
    """Payload for creating an event."""

    model_config = ConfigDict(use_enum_values=True)

    name: str = Field(..., min_length=3, max_length=200)
    type: EventType
    description: str | None = Field(default=None, max_length=2000)
    date: datetime
    end_date: datetime | None = None
    location: str = Field(..., min_length=3, max_length=200)
    capacity: int = Field(default=100, ge=1, le=100_000)
    price: float = Field(default=0, ge=0, le=99_999.99)
    status: EventStatus = Field(default=EventStatus.UPCOMING, validate_default=True)
    image: HttpUrl | None = None

    @field_validator("image", mode="before")
    @classmethod
    def empty_image_is_none(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @model_validator(mode="after")
    def end_after_start(self) -> EventCreate:
        if self.end_date is not None and self.end_date <= self.date:
            raise ValueError("End date must be after start date")
        return self

    def to_columns(self) -> dict[str, Any]:
        """Column values for a new ``events`` row."""
        data = self.model_dump(exclude={"image"})
        data["image"] = SingleImage(str(self.image)) if self.image else None
        return data


class EventUpdate(BaseModel):
    """Partial update of an event. Only fields that were sent are applied."""

    model_config = ConfigDict(use_enum_values=True)

    name: str | None = Field(default=None, min_length=3, max_length=200)
    type: EventType | None = None
    description: str | None = Field(default=None, max_length=2000)
    date: datetime | None = None
    end_date: datetime | None = None
    location: str | None = Field(default=None, min_length=3, max_length=200)
    capacity: int | None = Field(default=None, ge=1, le=100_000)
    price: float | None = Field(default=None, ge=0, le=99_999.99)
    status: EventStatus | None = None
    image: HttpUrl | None = None

    @field_validator(
        "name", "type", "date", "location", "capacity", "price", "status", mode="before"
    )
    @classmethod
    def required_columns_not_null(cls, v: Any, info: ValidationInfo) -> Any:
        # Only end_date, description and image can be cleared
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("image", mode="before")
    @classmethod
    def empty_image_is_none(cls, v: Any) -> Any:
        return _blank_to_none(v)

    def to_columns(self) -> dict[str, Any]:
        """Column values for the fields present in the request."""
        data = self.model_dump(exclude_unset=True)
        if "image" in data:
            data["image"] = SingleImage(str(self.image)) if self.image else None
        return data
