"""Database models package."""

from .base import Base
from .chat import (
    Channel,
    DirectMessage,
    FriendLink,
    GlobalMessage,
    Message,
    Server,
    ServerMember,
    User,
)
from .enums import FriendRequestStatus, FriendView, PresenceStatus

__all__ = [
    "Base",
    "User",
    "Server",
    "ServerMember",
    "Channel",
    "Message",
    "DirectMessage",
    "GlobalMessage",
    "FriendLink",
    "FriendRequestStatus",
    "FriendView",
    "PresenceStatus",
]
