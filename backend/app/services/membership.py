"""Server and channel membership operations."""

from __future__ import annotations

import logging

from app.core.errors import ForbiddenError
from app.core.slug import allocate_server_id
from app.schemas import ChannelRead, ServerRead
from app.services.store import ChatStore
from ghostcord.realtime import SessionRegistry

logger = logging.getLogger(__name__)


class MembershipService:
    """Create servers and channels, grant membership and list the results."""

    def __init__(self, store: ChatStore, registry: SessionRegistry) -> None:
        self._store = store
        self._registry = registry

    async def create_server(self, owner: str, name: str, server_id: str | None = None) -> ServerRead:
        """Create a server with its owner membership and default channel.

        The three inserts share one transaction, so a failure leaves nothing
        behind. On success every connection is told about the new server.
        """

        if server_id is None:
            server_id = allocate_server_id(name, self._store.server_exists)
        server = self._store.create_server_with_defaults(server_id, name, owner)
        logger.info("Server %s created by %s", server.id, owner)
        await self._registry.broadcast(
            {"type": "serverCreated", "server": server.model_dump(mode="json")}
        )
        return server

    async def join_server(self, identity: str, server_id: str) -> ServerRead:
        """Grant membership; joining twice is a no-op success."""

        server, added = self._store.insert_membership(server_id, identity)
        if added:
            logger.info("User %s joined server %s", identity, server_id)
            others = [member for member in server.members if member != identity]
            await self._registry.send_to_many(
                others, {"type": "serverMemberJoined", "serverId": server_id, "username": identity}
            )
        return server

    async def create_channel(self, identity: str, server_id: str, name: str) -> ChannelRead:
        if not self._store.is_member(server_id, identity):
            raise ForbiddenError(f"User {identity} is not a member of server {server_id}")
        channel = self._store.insert_channel(server_id, name)
        logger.info("Channel %s created in server %s by %s", name, server_id, identity)
        await self._registry.broadcast(
            {"type": "channelCreated", "serverId": server_id, "channel": channel.name}
        )
        return channel

    def list_servers(self) -> list[ServerRead]:
        return self._store.list_all_servers()

    def get_user_servers(self, identity: str) -> list[ServerRead]:
        return self._store.list_servers_for_user(identity)
