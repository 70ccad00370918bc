"""Event relay: validates inbound websocket events and fans out the results.

Each event kind maps to a payload schema and a handler. Durable writes happen
before any delivery, so a failed write never reaches other connections. All
failures are reported to the originating connection only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, Awaitable, Callable

from fastapi.websockets import WebSocket
from pydantic import BaseModel, ValidationError

from app.config import Settings, get_settings
from app.core.errors import (
    ForbiddenError,
    InvalidEventError,
    NotFoundError,
    NotJoinedError,
    PersistenceError,
    RelayError,
    UnreachableError,
)
from app.monitoring.metrics import relay_deliveries_total, relay_events_total
from app.schemas import (
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
from app.services.friends import FriendService
from app.services.membership import MembershipService
from app.services.store import ChatStore
from ghostcord.realtime import (
    CALL_EVENTS,
    CallSignalRelay,
    PresenceBroadcaster,
    SessionRegistry,
    safe_send_json,
)

logger = logging.getLogger(__name__)

Handler = Callable[[WebSocket, Any, Any], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class _Route:
    schema: type[BaseModel] | None
    handler: Handler
    requires_join: bool = True


def _describe_validation_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ())) or "payload"
    return f"Invalid {location}: {error.get('msg', 'invalid value')}"


def _dump(items: list[BaseModel]) -> list[dict[str, Any]]:
    return [item.model_dump(mode="json") for item in items]


class EventRelay:
    """Route websocket events to the chat services.

    One relay owns the session registry for the lifetime of the application;
    presence, friend, membership and call services share it.
    """

    def __init__(
        self,
        store: ChatStore,
        registry: SessionRegistry | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store
        self.registry = registry or SessionRegistry()
        self.presence = PresenceBroadcaster(self.registry)
        self.friends = FriendService(store, self.registry)
        self.membership = MembershipService(store, self.registry)
        self.signals = CallSignalRelay(self.registry)
        self._routes: dict[str, _Route] = {
            "ping": _Route(None, self._on_ping, requires_join=False),
            "pong": _Route(None, self._on_pong, requires_join=False),
            "join": _Route(JoinEvent, self._on_join, requires_join=False),
            "channelMessage": _Route(ChannelMessageEvent, self._on_channel_message),
            "globalMessage": _Route(GlobalMessageEvent, self._on_global_message),
            "dm": _Route(DirectMessageEvent, self._on_direct_message),
            "getMessages": _Route(HistoryQuery, self._on_get_messages),
            "getDirectMessages": _Route(DirectHistoryQuery, self._on_get_direct_messages),
            "getGlobalMessages": _Route(None, self._on_get_global_messages),
            "getServers": _Route(None, self._on_get_servers),
            "getUserServers": _Route(None, self._on_get_user_servers),
            "getFriends": _Route(None, self._on_get_friends),
            "createServer": _Route(CreateServerEvent, self._on_create_server),
            "joinServer": _Route(JoinServerEvent, self._on_join_server),
            "createChannel": _Route(CreateChannelEvent, self._on_create_channel),
            "friendRequest": _Route(FriendTargetEvent, self._on_friend_request),
            "acceptFriend": _Route(FriendTargetEvent, self._on_accept_friend),
            "removeFriend": _Route(RemoveFriendEvent, self._on_remove_friend),
        }
        for kind in CALL_EVENTS:
            self._routes[kind] = _Route(CallSignalEvent, partial(self._on_call_signal, kind))

    # lifecycle -----------------------------------------------------------

    def connect(self, connection: WebSocket) -> None:
        self.registry.attach(connection)

    async def disconnect(self, connection: WebSocket) -> None:
        """Unbind the connection and announce it offline if it was still current."""

        await self.presence.leave(connection)

    async def evict(self, identity: str) -> bool:
        return await self.presence.evict(identity)

    def shutdown(self) -> None:
        self.registry.clear()

    # dispatch ------------------------------------------------------------

    async def handle(self, connection: WebSocket, message: Any) -> None:
        """Process one decoded frame from *connection*.

        Never raises for bad input: failures become ``error`` or
        ``unreachable`` events sent back to the same connection.
        """

        kind = message.get("type") if isinstance(message, dict) else None
        label = kind if isinstance(kind, str) and kind in self._routes else "unknown"
        try:
            await self._dispatch(connection, kind, message)
        except RelayError as exc:
            relay_events_total.labels(label, exc.code).inc()
            if isinstance(exc, PersistenceError):
                logger.warning("Dropped %s event after store failure in %s", kind, exc.operation)
            else:
                logger.debug("Rejected %s event: %s", kind, exc.detail)
            await safe_send_json(connection, exc.to_payload(kind))
        except Exception:
            relay_events_total.labels(label, "internal_error").inc()
            logger.exception("Unhandled error while processing %s event", kind)
            await safe_send_json(
                connection,
                {
                    "type": "error",
                    "code": "internal_error",
                    "event": kind,
                    "detail": "Internal server error",
                },
            )
        else:
            relay_events_total.labels(label, "ok").inc()

    async def _dispatch(self, connection: WebSocket, kind: Any, message: Any) -> None:
        if not isinstance(kind, str) or not kind:
            raise InvalidEventError("Event type is required")
        route = self._routes.get(kind)
        if route is None:
            raise InvalidEventError(f"Unsupported event type: {kind}")

        identity = self.registry.identity_for(connection)
        if route.requires_join and identity is None:
            raise NotJoinedError("Send a join event first")

        payload: Any = None
        if route.schema is not None:
            try:
                payload = route.schema.model_validate(message)
            except ValidationError as exc:
                raise InvalidEventError(_describe_validation_error(exc)) from exc
        await route.handler(connection, identity, payload)

    async def _reply(self, connection: WebSocket, payload: dict[str, Any]) -> None:
        await safe_send_json(connection, payload)
        relay_deliveries_total.labels("reply").inc()

    def _message_text(self, text: str) -> str:
        limit = self.settings.chat_message_max_length
        if len(text) > limit:
            raise InvalidEventError(f"Message exceeds {limit} characters")
        return text

    # session -------------------------------------------------------------

    async def _on_ping(self, connection: WebSocket, identity: str | None, _: None) -> None:
        await self._reply(connection, {"type": "pong"})

    async def _on_pong(self, connection: WebSocket, identity: str | None, _: None) -> None:
        """Keepalive answer; nothing to do."""

    async def _on_join(self, connection: WebSocket, identity: str | None, event: JoinEvent) -> None:
        name = event.name
        if not self.store.user_exists(name):
            raise NotFoundError(f"User {name} not found")
        greeting = {
            "type": "joined",
            "username": name,
            "servers": _dump(self.membership.get_user_servers(name)),
            "friends": _dump(self.friends.list_friends(name)),
        }
        await self.presence.join(name, connection, greeting=greeting)

    # messages ------------------------------------------------------------

    async def _on_channel_message(
        self, connection: WebSocket, identity: str, event: ChannelMessageEvent
    ) -> None:
        text = self._message_text(event.msg.text)
        members_only = self.settings.channel_delivery_scope == "members"
        if members_only and not self.store.is_member(event.server, identity):
            raise ForbiddenError(f"User {identity} is not a member of server {event.server}")

        record = self.store.insert_channel_message(event.server, event.channel, identity, text)
        payload = {
            "type": "channelMessage",
            "server": event.server,
            "channel": event.channel,
            "msg": {**event.msg.model_dump(), **record.model_dump(mode="json")},
        }
        if members_only:
            await self.registry.send_to_many(self.store.list_members(event.server), payload)
            relay_deliveries_total.labels("members").inc()
        else:
            await self.registry.broadcast(payload)
            relay_deliveries_total.labels("broadcast").inc()

    async def _on_global_message(
        self, connection: WebSocket, identity: str, event: GlobalMessageEvent
    ) -> None:
        record = self.store.insert_global_message(identity, self._message_text(event.text))
        await self.registry.broadcast({"type": "globalMessage", **record.model_dump(mode="json")})
        relay_deliveries_total.labels("broadcast").inc()

    async def _on_direct_message(
        self, connection: WebSocket, identity: str, event: DirectMessageEvent
    ) -> None:
        text = self._message_text(event.msg.text)
        record = self.store.insert_direct_message(identity, event.to, text)
        msg = {**event.msg.model_dump(), **record.model_dump(mode="json")}
        delivered = await self.registry.send_to(event.to, {"type": "dm", "from": identity, "msg": msg})
        if delivered:
            relay_deliveries_total.labels("direct").inc()
        await self._reply(
            connection, {"type": "dmSent", "to": event.to, "msg": msg, "delivered": delivered}
        )
        if not delivered:
            # stored for later; the sender still learns the peer is offline
            raise UnreachableError(event.to)

    async def _on_get_messages(
        self, connection: WebSocket, identity: str, event: HistoryQuery
    ) -> None:
        records = self.store.list_channel_messages(event.server, event.channel)
        await self._reply(
            connection,
            {
                "type": "messages",
                "server": event.server,
                "channel": event.channel,
                "messages": _dump(records),
            },
        )

    async def _on_get_direct_messages(
        self, connection: WebSocket, identity: str, event: DirectHistoryQuery
    ) -> None:
        records = self.store.list_direct_messages(identity, event.peer)
        await self._reply(
            connection,
            {"type": "directMessages", "with": event.peer, "messages": _dump(records)},
        )

    async def _on_get_global_messages(
        self, connection: WebSocket, identity: str, _: None
    ) -> None:
        records = self.store.list_global_messages()
        await self._reply(connection, {"type": "globalMessages", "messages": _dump(records)})

    # servers -------------------------------------------------------------

    async def _on_get_servers(self, connection: WebSocket, identity: str, _: None) -> None:
        await self._reply(
            connection, {"type": "servers", "servers": _dump(self.membership.list_servers())}
        )

    async def _on_get_user_servers(self, connection: WebSocket, identity: str, _: None) -> None:
        servers = self.membership.get_user_servers(identity)
        await self._reply(connection, {"type": "userServers", "servers": _dump(servers)})

    async def _on_create_server(
        self, connection: WebSocket, identity: str, event: CreateServerEvent
    ) -> None:
        owner = event.server.owner
        if owner is not None and owner != identity:
            raise InvalidEventError("Server owner must be the joined user")
        await self.membership.create_server(identity, event.server.name, event.server_id)

    async def _on_join_server(
        self, connection: WebSocket, identity: str, event: JoinServerEvent
    ) -> None:
        if event.username is not None and event.username != identity:
            raise InvalidEventError("Cannot join a server on behalf of another user")
        server = await self.membership.join_server(identity, event.server_id)
        await self._reply(
            connection, {"type": "serverJoined", "server": server.model_dump(mode="json")}
        )

    async def _on_create_channel(
        self, connection: WebSocket, identity: str, event: CreateChannelEvent
    ) -> None:
        await self.membership.create_channel(identity, event.server_id, event.name)

    # friends -------------------------------------------------------------

    async def _on_get_friends(self, connection: WebSocket, identity: str, _: None) -> None:
        await self._reply(
            connection, {"type": "friends", "friends": _dump(self.friends.list_friends(identity))}
        )

    async def _on_friend_request(
        self, connection: WebSocket, identity: str, event: FriendTargetEvent
    ) -> None:
        await self.friends.request(identity, event.to)
        await self._reply(connection, {"type": "friendRequestSent", "to": event.to})

    async def _on_accept_friend(
        self, connection: WebSocket, identity: str, event: FriendTargetEvent
    ) -> None:
        await self.friends.accept(identity, event.to)
        await self._reply(connection, {"type": "friendAccepted", "friend": event.to})

    async def _on_remove_friend(
        self, connection: WebSocket, identity: str, event: RemoveFriendEvent
    ) -> None:
        await self.friends.remove(identity, event.username)
        await self._reply(
            connection, {"type": "removeFriendConfirmed", "username": event.username}
        )

    # calls ---------------------------------------------------------------

    async def _on_call_signal(
        self, kind: str, connection: WebSocket, identity: str, event: CallSignalEvent
    ) -> None:
        await self.signals.forward(kind, identity, event.to, event.model_dump())
        relay_deliveries_total.labels("direct").inc()


__all__ = ["EventRelay"]
