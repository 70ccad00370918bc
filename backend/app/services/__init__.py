"""Application services: durable store, credentials and the event relay."""

from .store import ChatStore
from .credentials import CredentialStore
from .friends import FriendService
from .membership import MembershipService
from .relay import EventRelay

__all__ = [
    "ChatStore",
    "CredentialStore",
    "FriendService",
    "MembershipService",
    "EventRelay",
]
