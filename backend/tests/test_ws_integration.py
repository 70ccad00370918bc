"""End-to-end websocket scenarios driven through FastAPI's TestClient."""

from __future__ import annotations

from typing import Any

from fastapi.testclient import TestClient
from starlette.testclient import WebSocketTestSession


def signup(client: TestClient, username: str, password: str = "secret") -> None:
    response = client.post("/api/auth/signup", json={"username": username, "password": password})
    assert response.status_code == 201, response.text


def receive_until(connection: WebSocketTestSession, kind: str, limit: int = 20) -> dict[str, Any]:
    """Skip presence chatter until a message of *kind* arrives."""

    for _ in range(limit):
        message = connection.receive_json()
        if message["type"] == kind:
            return message
    raise AssertionError(f"No {kind} message within {limit} frames")


def join(connection: WebSocketTestSession, name: str) -> dict[str, Any]:
    connection.send_json({"type": "join", "name": name})
    joined = receive_until(connection, "joined")
    receive_until(connection, "userOnline")
    return joined


def test_friend_request_and_accept_flow(client: TestClient):
    signup(client, "alice")
    signup(client, "bob")

    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
        join(alice, "alice")
        join(bob, "bob")

        alice.send_json({"type": "friendRequest", "to": "bob"})
        assert receive_until(alice, "friendRequestSent") == {"type": "friendRequestSent", "to": "bob"}
        assert receive_until(bob, "friendRequest") == {"type": "friendRequest", "from": "alice"}

        bob.send_json({"type": "acceptFriend", "to": "alice"})
        assert receive_until(bob, "friendAccepted") == {"type": "friendAccepted", "friend": "alice"}
        assert receive_until(alice, "acceptFriend") == {"type": "acceptFriend", "from": "bob"}

        alice.send_json({"type": "getFriends"})
        friends = receive_until(alice, "friends")
        assert friends["friends"] == [{"username": "bob", "status": "accepted"}]

        alice.send_json({"type": "friendRequest", "to": "bob"})
        error = receive_until(alice, "error")
        assert error["code"] == "conflict"
        assert error["detail"] == "Already friends or request pending"

    response = client.get("/api/users/alice/friends")
    assert response.json() == [{"username": "bob", "status": "accepted"}]


def test_create_server_is_broadcast_and_listed(client: TestClient):
    signup(client, "alice")

    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as watcher:
        join(alice, "alice")

        alice.send_json(
            {"type": "createServer", "serverId": "s1", "server": {"name": "Test", "owner": "alice"}}
        )
        for connection in (alice, watcher):
            created = receive_until(connection, "serverCreated")
            assert created["server"]["id"] == "s1"
            assert created["server"]["channels"] == ["general"]
            assert created["server"]["members"] == ["alice"]

        alice.send_json({"type": "getServers"})
        servers = receive_until(alice, "servers")["servers"]
        assert [(server["id"], server["channels"], server["members"]) for server in servers] == [
            ("s1", ["general"], ["alice"])
        ]

    listed = client.get("/api/servers").json()
    assert listed[0]["id"] == "s1"
    assert client.get("/api/users/alice/servers").json()[0]["members"] == ["alice"]


def test_dm_to_offline_user_is_available_in_history(client: TestClient):
    signup(client, "alice")
    signup(client, "bob")

    with client.websocket_connect("/ws") as alice:
        join(alice, "alice")
        alice.send_json({"type": "dm", "to": "bob", "msg": {"text": "hi"}})
        assert receive_until(alice, "dmSent")["delivered"] is False
        assert receive_until(alice, "unreachable")["to"] == "bob"

    with client.websocket_connect("/ws") as bob:
        join(bob, "bob")
        bob.send_json({"type": "getDirectMessages", "with": "alice"})
        history = receive_until(bob, "directMessages")
        assert history["with"] == "alice"
        assert [(record["sender"], record["text"]) for record in history["messages"]] == [
            ("alice", "hi")
        ]


def test_abrupt_disconnect_unbinds_identity(client: TestClient):
    signup(client, "alice")
    signup(client, "bob")

    with client.websocket_connect("/ws") as bob:
        join(bob, "bob")
        with client.websocket_connect("/ws") as alice:
            join(alice, "alice")
            receive_until(bob, "userOnline")

        offline = receive_until(bob, "userOffline")
        assert offline == {"type": "userOffline", "username": "alice"}
        online = receive_until(bob, "onlineUsers")
        assert online["users"] == {"bob": "online"}

    assert client.app.state.relay.registry.online_identities() == []


def test_channel_history_is_ordered_capped_and_idempotent(client: TestClient):
    signup(client, "alice")
    store = client.app.state.store
    store.create_server_with_defaults("s1", "Test", "alice")
    for index in range(105):
        store.insert_channel_message("s1", "general", "alice", f"message {index}")

    with client.websocket_connect("/ws") as alice:
        join(alice, "alice")
        alice.send_json({"type": "getMessages", "server": "s1", "channel": "general"})
        first = receive_until(alice, "messages")
        alice.send_json({"type": "getMessages", "server": "s1", "channel": "general"})
        second = receive_until(alice, "messages")

    records = first["messages"]
    assert len(records) == 100
    assert records[0]["text"] == "message 5"
    assert records[-1]["text"] == "message 104"
    assert [record["created_at"] for record in records] == sorted(
        record["created_at"] for record in records
    )
    assert first == second


def test_invalid_json_is_reported_and_connection_stays_open(client: TestClient):
    with client.websocket_connect("/ws") as connection:
        connection.send_text("{not json")
        error = connection.receive_json()
        assert error["code"] == "invalid_event"
        assert error["detail"] == "Invalid payload"

        connection.send_json({"type": "ping"})
        assert connection.receive_json() == {"type": "pong"}
