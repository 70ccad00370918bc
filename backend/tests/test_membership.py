from __future__ import annotations

from typing import Any

import pytest
from fastapi.websockets import WebSocketState

from app.core.errors import ConflictError, ForbiddenError, NotFoundError
from app.services import MembershipService
from ghostcord.realtime import SessionRegistry


class DummyWebSocket:
    def __init__(self) -> None:
        self.application_state = WebSocketState.CONNECTED
        self.sent: list[dict[str, Any]] = []

    async def send_json(self, payload: dict[str, Any]) -> None:
        self.sent.append(payload)


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture()
def membership(store, registry, make_user) -> MembershipService:
    make_user("alice", "bob")
    return MembershipService(store, registry)


@pytest.mark.anyio("asyncio")
async def test_create_server_broadcasts_to_all_connections(membership, registry):
    joined, anonymous = DummyWebSocket(), DummyWebSocket()
    registry.attach(anonymous)
    registry.bind("bob", joined)

    server = await membership.create_server("alice", "Test", "s1")

    assert server.channels == ["general"]
    for connection in (joined, anonymous):
        assert len(connection.sent) == 1
        event = connection.sent[0]
        assert event["type"] == "serverCreated"
        assert event["server"]["id"] == "s1"
        assert event["server"]["channels"] == ["general"]
        assert event["server"]["members"] == ["alice"]


@pytest.mark.anyio("asyncio")
async def test_create_server_without_id_derives_one_from_name(membership):
    first = await membership.create_server("alice", "Night Owls")
    second = await membership.create_server("bob", "Night Owls")

    assert first.id == "night-owls"
    assert second.id.startswith("night-owls-")
    assert second.id != first.id


@pytest.mark.anyio("asyncio")
async def test_create_server_with_taken_id_conflicts_without_broadcast(membership, registry):
    await membership.create_server("alice", "Test", "s1")
    watcher = DummyWebSocket()
    registry.attach(watcher)

    with pytest.raises(ConflictError):
        await membership.create_server("bob", "Again", "s1")

    assert watcher.sent == []


@pytest.mark.anyio("asyncio")
async def test_join_server_is_idempotent_and_notifies_members_once(membership, registry):
    alice = DummyWebSocket()
    registry.bind("alice", alice)
    await membership.create_server("alice", "Test", "s1")
    alice.sent.clear()

    first = await membership.join_server("bob", "s1")
    second = await membership.join_server("bob", "s1")

    assert first.members == second.members == ["alice", "bob"]
    assert alice.sent == [{"type": "serverMemberJoined", "serverId": "s1", "username": "bob"}]
    assert [server.id for server in membership.get_user_servers("bob")] == ["s1"]


@pytest.mark.anyio("asyncio")
async def test_join_unknown_server_is_not_found(membership):
    with pytest.raises(NotFoundError):
        await membership.join_server("bob", "missing")


@pytest.mark.anyio("asyncio")
async def test_create_channel_requires_membership(membership, registry):
    await membership.create_server("alice", "Test", "s1")
    watcher = DummyWebSocket()
    registry.attach(watcher)

    with pytest.raises(ForbiddenError):
        await membership.create_channel("bob", "s1", "random")

    channel = await membership.create_channel("alice", "s1", "random")

    assert channel.name == "random"
    assert watcher.sent == [{"type": "channelCreated", "serverId": "s1", "channel": "random"}]
    assert membership.list_servers()[0].channels == ["general", "random"]
