from __future__ import annotations

from enum import Enum


class PresenceStatus(str, Enum):
    """Presence indicator published for bound identities."""

    ONLINE = "online"


class FriendRequestStatus(str, Enum):
    """Lifecycle states for friend relationships."""

    PENDING = "pending"
    ACCEPTED = "accepted"


class FriendView(str, Enum):
    """How a friend relation looks to one of its two parties."""

    SENT = "sent"
    PENDING = "pending"
    ACCEPTED = "accepted"
