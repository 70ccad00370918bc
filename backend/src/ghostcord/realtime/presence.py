"""Presence announcements derived from the session registry."""

from __future__ import annotations

import logging
from typing import Any

from fastapi.websockets import WebSocket

from app.models.enums import PresenceStatus

from .sessions import SessionRegistry, safe_send_json

logger = logging.getLogger(__name__)


class PresenceBroadcaster:
    """Bind identities and tell every connection who is online.

    Announcements are always issued after the registry mutation so the
    snapshot they carry already reflects it.
    """

    def __init__(self, registry: SessionRegistry) -> None:
        self._registry = registry

    def snapshot(self) -> dict[str, str]:
        return {
            identity: PresenceStatus.ONLINE.value
            for identity in self._registry.online_identities()
        }

    def _online_users(self) -> dict[str, Any]:
        return {"type": "onlineUsers", "users": self.snapshot()}

    async def announce_online(self, identity: str) -> None:
        await self._registry.broadcast(self._online_users())
        await self._registry.broadcast({"type": "userOnline", "username": identity})

    async def announce_offline(self, identity: str) -> None:
        await self._registry.broadcast({"type": "userOffline", "username": identity})
        await self._registry.broadcast(self._online_users())

    async def join(
        self,
        identity: str,
        connection: WebSocket,
        *,
        greeting: dict[str, Any] | None = None,
    ) -> None:
        """Bind *identity* to *connection* and announce it.

        *greeting* reaches the joining connection before the presence
        broadcasts do.
        """

        released = self._registry.bind(identity, connection)
        if released is not None:
            logger.info("Connection rebound from %s to %s", released, identity)
            await self.announce_offline(released)
        if greeting is not None:
            await safe_send_json(connection, greeting)
        logger.info("User %s joined", identity)
        await self.announce_online(identity)

    async def leave(self, connection: WebSocket) -> str | None:
        """Detach *connection*; announces the identity it held, if still current."""

        entry = self._registry.detach(connection)
        if entry is None:
            return None
        logger.info("User %s left", entry.identity)
        await self.announce_offline(entry.identity)
        return entry.identity

    async def evict(self, identity: str) -> bool:
        """Drop the live session of *identity* while leaving its socket attached."""

        connection = self._registry.lookup(identity)
        if connection is None or self._registry.unbind(connection) is None:
            return False
        logger.info("Session for %s evicted", identity)
        await self.announce_offline(identity)
        return True


__all__ = ["PresenceBroadcaster"]
