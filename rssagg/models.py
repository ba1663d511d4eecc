"""Shapes of the records returned to API clients."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from . import database as db


def _format_time(value: datetime) -> str:
    """Format a time as RFC 3339 with trailing zeros of the fraction dropped."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    offset = value.utcoffset()
    if not offset:
        return text + "Z"
    minutes = int(offset.total_seconds() // 60)
    sign = "+" if minutes >= 0 else "-"
    minutes = abs(minutes)
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True)
class User:
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    name: str
    api_key: str

    @classmethod
    def from_record(cls, record: db.User) -> User:
        return cls(
            id=record.id,
            created_at=record.created_at,
            updated_at=record.updated_at,
            name=record.name,
            api_key=record.api_key,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "created_at": _format_time(self.created_at),
            "updated_at": _format_time(self.updated_at),
            "name": self.name,
            "api_key": self.api_key,
        }


@dataclass(frozen=True)
class Feed:
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    name: str
    url: str
    user_id: uuid.UUID

    @classmethod
    def from_record(cls, record: db.Feed) -> Feed:
        return cls(
            id=record.id,
            created_at=record.created_at,
            updated_at=record.updated_at,
            name=record.name,
            url=record.url,
            user_id=record.user_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "created_at": _format_time(self.created_at),
            "updated_at": _format_time(self.updated_at),
            "name": self.name,
            "url": self.url,
            "user_id": str(self.user_id),
        }


@dataclass(frozen=True)
class FeedFollow:
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    user_id: uuid.UUID
    feed_id: uuid.UUID

    @classmethod
    def from_record(cls, record: db.FeedFollow) -> FeedFollow:
        return cls(
            id=record.id,
            created_at=record.created_at,
            updated_at=record.updated_at,
            user_id=record.user_id,
            feed_id=record.feed_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "created_at": _format_time(self.created_at),
            "updated_at": _format_time(self.updated_at),
            "user_id": str(self.user_id),
            "feed_id": str(self.feed_id),
        }


@dataclass(frozen=True)
class Post:
    id: uuid.UUID
    created_at: datetime
    updated_at: datetime
    title: str
    description: str | None
    published_at: datetime
    url: str
    feed_id: uuid.UUID

    @classmethod
    def from_record(cls, record: db.Post) -> Post:
        return cls(
            id=record.id,
            created_at=record.created_at,
            updated_at=record.updated_at,
            title=record.title,
            description=record.description,
            published_at=record.published_at,
            url=record.url,
            feed_id=record.feed_id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "created_at": _format_time(self.created_at),
            "updated_at": _format_time(self.updated_at),
            "title": self.title,
            "description": self.description,
            "published_at": _format_time(self.published_at),
            "url": self.url,
            "feed_id": str(self.feed_id),
        }