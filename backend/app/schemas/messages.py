"""Schemas for channel, direct and global message records."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, computed_field, field_validator


class _TimestampedRecord(BaseModel):
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # DATETIME columns come back naive; stored values are always UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @computed_field  # type: ignore[prop-decorator]
    @property
    def time(self) -> str:
        """Short wall-clock label shown next to the message."""

        return self.created_at.strftime("%H:%M")


class ChannelMessageRead(_TimestampedRecord):
    """Message posted in a server channel."""

    id: int
    server: str
    channel: str
    user: str
    text: str


class DirectMessageRead(_TimestampedRecord):
    """Message exchanged between two users."""

    id: int
    sender: str
    recipient: str
    text: str


class GlobalMessageRead(_TimestampedRecord):
    """Message broadcast to every connection."""

    id: int
    user: str
    text: str
