"""Registry of live websocket connections and the identities bound to them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable

from fastapi.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from app.monitoring.metrics import realtime_connections, realtime_online_users

logger = logging.getLogger(__name__)


async def safe_send_json(websocket: WebSocket, data: dict[str, Any]) -> bool:
    """Safely send JSON data through websocket, handling disconnections gracefully.

    Returns True if message was sent successfully, False otherwise.
    """
    if websocket.application_state != WebSocketState.CONNECTED:
        return False
    try:
        await websocket.send_json(data)
        return True
    except (WebSocketDisconnect, RuntimeError) as e:
        logger.debug("Failed to send websocket message: %s", e)
        return False


@dataclass(slots=True)
class SessionEntry:
    identity: str
    connection: WebSocket


class SessionRegistry:
    """Map identities to their single live connection.

    The last bind for an identity wins. Unbinding is keyed by connection, so a
    superseded connection closing never evicts the newer binding. Every
    accepted connection is tracked, joined or not, because broadcasts reach
    all of them.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, SessionEntry] = {}
        self._identities: Dict[WebSocket, str] = {}
        self._connections: Dict[WebSocket, None] = {}

    def _update_gauges(self) -> None:
        realtime_connections.labels().set(len(self._connections))
        realtime_online_users.labels().set(len(self._entries))

    def attach(self, connection: WebSocket) -> None:
        self._connections[connection] = None
        self._update_gauges()

    def detach(self, connection: WebSocket) -> SessionEntry | None:
        """Forget the connection, returning the entry it still held, if any."""

        entry = self.unbind(connection)
        self._connections.pop(connection, None)
        self._update_gauges()
        return entry

    def bind(self, identity: str, connection: WebSocket) -> str | None:
        """Bind *identity* to *connection*.

        Returns the identity this connection held before, if the rebind took it
        offline.
        """

        released: str | None = None
        previous_identity = self._identities.get(connection)
        if previous_identity is not None and previous_identity != identity:
            current = self._entries.get(previous_identity)
            if current is not None and current.connection is connection:
                del self._entries[previous_identity]
                released = previous_identity

        existing = self._entries.get(identity)
        if existing is not None and existing.connection is not connection:
            self._identities.pop(existing.connection, None)
            logger.info("Session for %s superseded by a newer connection", identity)

        entry = SessionEntry(identity=identity, connection=connection)
        self._entries[identity] = entry
        self._identities[connection] = identity
        self._connections[connection] = None
        self._update_gauges()
        return released

    def unbind(self, connection: WebSocket) -> SessionEntry | None:
        """Release the identity held by *connection*.

        Returns ``None`` when the connection never joined or was superseded.
        """

        identity = self._identities.pop(connection, None)
        if identity is None:
            return None
        entry = self._entries.get(identity)
        if entry is None or entry.connection is not connection:
            return None
        del self._entries[identity]
        self._update_gauges()
        return entry

    def lookup(self, identity: str) -> WebSocket | None:
        entry = self._entries.get(identity)
        return entry.connection if entry is not None else None

    def identity_for(self, connection: WebSocket) -> str | None:
        return self._identities.get(connection)

    def online_identities(self) -> list[str]:
        return list(self._entries)

    def connections(self) -> list[WebSocket]:
        return list(self._connections)

    def clear(self) -> None:
        self._entries.clear()
        self._identities.clear()
        self._connections.clear()
        self._update_gauges()

    async def send_to(self, identity: str, payload: dict[str, Any]) -> bool:
        connection = self.lookup(identity)
        if connection is None:
            logger.debug("No live session for %s", identity)
            return False
        return await safe_send_json(connection, payload)

    async def broadcast(
        self,
        payload: dict[str, Any],
        *,
        exclude: Iterable[WebSocket] | None = None,
    ) -> int:
        """Send *payload* to every attached connection; returns the delivery count."""

        exclude_set = set(exclude or [])
        delivered = 0
        for connection in self.connections():
            if connection in exclude_set:
                continue
            if await safe_send_json(connection, payload):
                delivered += 1
        return delivered

    async def send_to_many(self, identities: Iterable[str], payload: dict[str, Any]) -> int:
        delivered = 0
        for identity in identities:
            if await self.send_to(identity, payload):
                delivered += 1
        return delivered


__all__ = ["SessionEntry", "SessionRegistry", "safe_send_json"]
