"""Request payloads and domain value types."""

from eventhub.models.event import (
    EventCreate,
    EventImage,
    EventStatus,
    EventType,
    EventUpdate,
    ImageList,
    SingleImage,
    parse_event_image,
    serialize_event_image,
)
from eventhub.models.user import (
    LoginRequest,
    RegisterRequest,
    UserPublic,
    UserSummary,
)
from eventhub.models.venue import ScrapeTriggerRequest

__all__ = [
    # Events
    "EventCreate",
    "EventImage",
    "EventStatus",
    "EventType",
    "EventUpdate",
    "ImageList",
    "SingleImage",
    "parse_event_image",
    "serialize_event_image",
    # Users
    "LoginRequest",
    "RegisterRequest",
    "UserPublic",
    "UserSummary",
    # Venues
    "ScrapeTriggerRequest",
]
