"""Database models for EventHub.

## Schema Overview

```
users
├── events (1:N, creator_id, SET NULL on delete)
├── favorites (1:N)
└── scrape_requests (1:N, requested_by, SET NULL on delete)
events
└── favorites (1:N)
scraped_venues (written by the scraping workflow)
```

## Credential Invariant

A user row always carries a password hash, a Google account id, or both.
Password-less rows are created by Google sign-in; password rows gain a
``google_id`` the first time the same email signs in with Google.

Unique constraints are named so that integrity errors can be attributed to
the offending column (see `eventhub.auth.service`).
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from eventhub.models.event import (
    EventImage,
    parse_event_image,
    serialize_event_image,
)

USERNAME_MAX_LENGTH = 50
USERNAME_CONSTRAINT = "uq_users_username"


class Base(DeclarativeBase):
    """Base class for all database models."""


class EventImageType(TypeDecorator):
    """Stores an `EventImage` as text and parses it back on load."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: EventImage | str | None, dialect) -> str | None:
        if isinstance(value, str):
            value = parse_event_image(value)
        return serialize_event_image(value)

    def process_result_value(self, value: str | None, dialect) -> EventImage | None:
        return parse_event_image(value)


class User(Base):
    """User account.

    Created by password registration or on first Google sign-in.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(USERNAME_MAX_LENGTH), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(255))
    google_id: Mapped[str | None] = mapped_column(String(255))
    avatar: Mapped[str | None] = mapped_column(String(512))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    events: Mapped[list["Event"]] = relationship(back_populates="creator")
    favorites: Mapped[list["Favorite"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("username", name=USERNAME_CONSTRAINT),
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint("google_id", name="uq_users_google_id"),
        CheckConstraint(
            "password_hash IS NOT NULL OR google_id IS NOT NULL",
            name="ck_users_has_credential",
        ),
    )

    def __repr__(self) -> str:
        return f"<User {self.id} {self.username}>"


class Event(Base):
    """A public event listing."""

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, default=100)
    price: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), default=0)
    status: Mapped[str] = mapped_column(String(32), default="upcoming")
    image: Mapped[EventImage | None] = mapped_column(EventImageType(), nullable=True)
    creator_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL")
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    creator: Mapped["User"] = relationship(back_populates="events")
    favorites: Mapped[list["Favorite"]] = relationship(
        back_populates="event", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("ix_events_date", "date"),
        Index("ix_events_type_status", "type", "status"),
    )

    def __repr__(self) -> str:
        return f"<Event {self.id} {self.name[:30]}>"


class Favorite(Base):
    """A user's bookmark on an event."""

    __tablename__ = "favorites"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    event_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="favorites")
    event: Mapped["Event"] = relationship(back_populates="favorites")

    __table_args__ = (
        UniqueConstraint("user_id", "event_id", name="uq_favorites_user_event"),
        Index("ix_favorites_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<Favorite user_id={self.user_id} event_id={self.event_id}>"


class ScrapedVenue(Base):
    """A venue collected by the scraping workflow."""

    __tablename__ = "scraped_venues"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str | None] = mapped_column(String(255))
    address: Mapped[str | None] = mapped_column(String(512))
    phone: Mapped[str | None] = mapped_column(String(64))
    website: Mapped[str | None] = mapped_column(String(512))
    city: Mapped[str | None] = mapped_column(String(100))
    keyword: Mapped[str | None] = mapped_column(String(100))
    scraped_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_scraped_venues_city_keyword", "city", "keyword"),
    )

    def __repr__(self) -> str:
        return f"<ScrapedVenue {self.title}>"


class ScrapeRequest(Base):
    """Audit record of a triggered scraping run."""

    __tablename__ = "scrape_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    keyword: Mapped[str] = mapped_column(String(100), nullable=False)
    requested_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL")
    )
    sheet_url: Mapped[str | None] = mapped_column(String(512))
    triggered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<ScrapeRequest {self.city}/{self.keyword}>"
