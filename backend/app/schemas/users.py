"""Schemas related to friendships."""

from datetime import datetime

from pydantic import BaseModel

from app.models.enums import FriendRequestStatus, FriendView


class FriendRecord(BaseModel):
    """Stored friend relation between two users."""

    user_low: str
    user_high: str
    requester: str
    status: FriendRequestStatus
    created_at: datetime

    def other(self, username: str) -> str:
        return self.user_high if username == self.user_low else self.user_low


class FriendEntry(BaseModel):
    """A friend relation as seen by one of its two parties."""

    username: str
    status: FriendView
