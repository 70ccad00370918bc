"""Pydantic schemas for API payloads and websocket events."""

from .auth import Credentials, LoginResult, UserRead
from .events import (
    CallSignalEvent,
    ChannelMessageEvent,
    CreateChannelEvent,
    CreateServerEvent,
    DirectHistoryQuery,
    DirectMessageEvent,
    FriendTargetEvent,
    GlobalMessageEvent,
    HistoryQuery,
    JoinEvent,
    JoinServerEvent,
    RemoveFriendEvent,
)
from .messages import ChannelMessageRead, DirectMessageRead, GlobalMessageRead
from .servers import ChannelRead, ServerRead
from .users import FriendEntry, FriendRecord

__all__ = [
    "Credentials",
    "LoginResult",
    "UserRead",
    "CallSignalEvent",
    "ChannelMessageEvent",
    "CreateChannelEvent",
    "CreateServerEvent",
    "DirectHistoryQuery",
    "DirectMessageEvent",
    "FriendTargetEvent",
    "GlobalMessageEvent",
    "HistoryQuery",
    "JoinEvent",
    "JoinServerEvent",
    "RemoveFriendEvent",
    "ChannelMessageRead",
    "DirectMessageRead",
    "GlobalMessageRead",
    "ChannelRead",
    "ServerRead",
    "FriendEntry",
    "FriendRecord",
]
