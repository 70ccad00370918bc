"""Read-only projections of servers and friend lists."""

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_relay, get_store
from app.schemas import FriendEntry, ServerRead
from app.services import ChatStore, EventRelay

router = APIRouter()


def _require_user(username: str, store: ChatStore) -> None:
    if not store.user_exists(username):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail=f"User {username} not found"
        )


@router.get("/servers", response_model=list[ServerRead])
def list_servers(relay: EventRelay = Depends(get_relay)) -> list[ServerRead]:
    return relay.membership.list_servers()


@router.get("/users/{username}/servers", response_model=list[ServerRead])
def list_user_servers(
    username: str,
    store: ChatStore = Depends(get_store),
    relay: EventRelay = Depends(get_relay),
) -> list[ServerRead]:
    """Servers the user is a member of, with channel and member names."""

    _require_user(username, store)
    return relay.membership.get_user_servers(username)


@router.get("/users/{username}/friends", response_model=list[FriendEntry])
def list_user_friends(
    username: str,
    store: ChatStore = Depends(get_store),
    relay: EventRelay = Depends(get_relay),
) -> list[FriendEntry]:
    _require_user(username, store)
    return relay.friends.list_friends(username)
