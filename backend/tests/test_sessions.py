from __future__ import annotations

from typing import Any

import pytest
from fastapi.websockets import WebSocketState

from app.monitoring.metrics import realtime_connections, realtime_online_users
from ghostcord.realtime import PresenceBroadcaster, SessionRegistry


class DummyWebSocket:
    def __init__(self) -> None:
        self.application_state = WebSocketState.CONNECTED
        self.sent: list[dict[str, Any]] = []

    async def send_json(self, payload: dict[str, Any]) -> None:
        self.sent.append(payload)

    def types(self) -> list[str]:
        return [payload["type"] for payload in self.sent]


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


def test_last_bind_wins_and_stale_unbind_is_ignored() -> None:
    registry = SessionRegistry()
    first, second = DummyWebSocket(), DummyWebSocket()
    registry.attach(first)
    registry.attach(second)

    registry.bind("alice", first)
    registry.bind("alice", second)

    assert registry.lookup("alice") is second
    assert registry.identity_for(first) is None

    assert registry.unbind(first) is None
    assert registry.lookup("alice") is second
    assert registry.online_identities() == ["alice"]

    entry = registry.unbind(second)
    assert entry is not None and entry.identity == "alice"
    assert registry.lookup("alice") is None


def test_rebinding_connection_releases_previous_identity() -> None:
    registry = SessionRegistry()
    connection = DummyWebSocket()

    registry.bind("alice", connection)
    assert registry.bind("bob", connection) == "alice"
    assert registry.online_identities() == ["bob"]
    assert registry.identity_for(connection) == "bob"


def test_detach_forgets_connection_and_updates_gauges() -> None:
    registry = SessionRegistry()
    joined, anonymous = DummyWebSocket(), DummyWebSocket()
    registry.attach(joined)
    registry.attach(anonymous)
    registry.bind("alice", joined)

    assert realtime_connections.value() == 2
    assert realtime_online_users.value() == 1

    entry = registry.detach(joined)

    assert entry is not None and entry.identity == "alice"
    assert registry.connections() == [anonymous]
    assert realtime_connections.value() == 1
    assert realtime_online_users.value() == 0
    assert registry.detach(anonymous) is None


@pytest.mark.anyio("asyncio")
async def test_broadcast_reaches_every_attached_connection() -> None:
    registry = SessionRegistry()
    joined, anonymous, closed = DummyWebSocket(), DummyWebSocket(), DummyWebSocket()
    closed.application_state = WebSocketState.DISCONNECTED
    for connection in (joined, anonymous, closed):
        registry.attach(connection)
    registry.bind("alice", joined)

    delivered = await registry.broadcast({"type": "globalMessage"}, exclude=[anonymous])

    assert delivered == 1
    assert joined.types() == ["globalMessage"]
    assert anonymous.sent == []
    assert closed.sent == []


@pytest.mark.anyio("asyncio")
async def test_send_to_offline_identity_is_a_soft_miss() -> None:
    registry = SessionRegistry()

    assert await registry.send_to("nobody", {"type": "dm"}) is False


@pytest.mark.anyio("asyncio")
async def test_presence_join_greets_then_announces() -> None:
    registry = SessionRegistry()
    presence = PresenceBroadcaster(registry)
    alice, bob = DummyWebSocket(), DummyWebSocket()
    registry.attach(alice)
    registry.attach(bob)

    await presence.join("alice", alice, greeting={"type": "joined", "username": "alice"})

    assert alice.types() == ["joined", "onlineUsers", "userOnline"]
    assert alice.sent[1]["users"] == {"alice": "online"}
    assert bob.types() == ["onlineUsers", "userOnline"]
    assert bob.sent[1] == {"type": "userOnline", "username": "alice"}


@pytest.mark.anyio("asyncio")
async def test_presence_leave_announces_offline_after_unbind() -> None:
    registry = SessionRegistry()
    presence = PresenceBroadcaster(registry)
    alice, bob = DummyWebSocket(), DummyWebSocket()
    registry.attach(alice)
    registry.attach(bob)
    await presence.join("alice", alice)
    await presence.join("bob", bob)
    bob.sent.clear()

    assert await presence.leave(alice) == "alice"

    assert bob.sent == [
        {"type": "userOffline", "username": "alice"},
        {"type": "onlineUsers", "users": {"bob": "online"}},
    ]
    assert "alice" not in registry.online_identities()


@pytest.mark.anyio("asyncio")
async def test_superseded_connection_leaving_keeps_newer_session_online() -> None:
    registry = SessionRegistry()
    presence = PresenceBroadcaster(registry)
    old, new, watcher = DummyWebSocket(), DummyWebSocket(), DummyWebSocket()
    for connection in (old, new, watcher):
        registry.attach(connection)
    await presence.join("alice", old)
    await presence.join("alice", new)
    watcher.sent.clear()

    assert await presence.leave(old) is None

    assert watcher.sent == []
    assert registry.lookup("alice") is new


@pytest.mark.anyio("asyncio")
async def test_evict_drops_session_but_keeps_socket_attached() -> None:
    registry = SessionRegistry()
    presence = PresenceBroadcaster(registry)
    alice = DummyWebSocket()
    registry.attach(alice)
    await presence.join("alice", alice)
    alice.sent.clear()

    assert await presence.evict("alice") is True
    assert await presence.evict("alice") is False

    assert registry.connections() == [alice]
    assert alice.types() == ["userOffline", "onlineUsers"]
