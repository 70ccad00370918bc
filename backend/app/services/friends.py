"""Friend-request state machine.

A pair of users has either no record, a ``pending`` record or an ``accepted``
one. Removing the record is the only way back to "no record", which covers
withdrawing, declining and unfriending alike.
"""

from __future__ import annotations

import logging

from app.core.errors import InvalidEventError, NotFoundError
from app.models.enums import FriendRequestStatus, FriendView
from app.schemas import FriendEntry, FriendRecord
from app.services.store import ChatStore
from ghostcord.realtime import SessionRegistry

logger = logging.getLogger(__name__)


class FriendService:
    def __init__(self, store: ChatStore, registry: SessionRegistry) -> None:
        self._store = store
        self._registry = registry

    async def request(self, requester: str, target: str) -> FriendRecord:
        if requester == target:
            raise InvalidEventError("Cannot send a friend request to yourself")
        record = self._store.insert_friend_record(requester, target)
        logger.info("Friend request %s -> %s", requester, target)
        await self._registry.send_to(target, {"type": "friendRequest", "from": requester})
        return record

    async def accept(self, accepter: str, other: str) -> FriendRecord:
        # Either party may accept; the requester is not checked.
        record = self._store.update_friend_status(accepter, other, FriendRequestStatus.ACCEPTED)
        if record is None:
            raise NotFoundError(f"No friend request between {accepter} and {other}")
        logger.info("Friendship %s <-> %s accepted", accepter, other)
        await self._registry.send_to(other, {"type": "acceptFriend", "from": accepter})
        return record

    async def remove(self, remover: str, other: str) -> FriendRecord:
        record = self._store.delete_friend_record(remover, other)
        if record is None:
            raise NotFoundError(f"No friend relation between {remover} and {other}")
        logger.info("Friend relation %s <-> %s removed by %s", record.user_low, record.user_high, remover)
        await self._registry.send_to(other, {"type": "friendRemoved", "from": remover})
        return record

    def list_friends(self, viewer: str) -> list[FriendEntry]:
        """Friend list as *viewer* sees it: own pending requests show as ``sent``."""

        entries = []
        for record in self._store.list_friends_for_user(viewer):
            if record.status == FriendRequestStatus.ACCEPTED:
                view = FriendView.ACCEPTED
            elif record.requester == viewer:
                view = FriendView.SENT
            else:
                view = FriendView.PENDING
            entries.append(FriendEntry(username=record.other(viewer), status=view))
        return entries
