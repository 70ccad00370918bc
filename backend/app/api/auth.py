"""Authentication API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.api.deps import get_credentials, get_relay, get_store
from app.core.errors import ConflictError
from app.schemas import Credentials, LoginResult, UserRead
from app.services import ChatStore, CredentialStore, EventRelay

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/signup", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def signup(
    credentials: Credentials,
    credential_store: CredentialStore = Depends(get_credentials),
) -> UserRead:
    """Register a new user in the system."""

    try:
        return credential_store.create(credentials.username, credentials.password)
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.detail) from exc


@router.post("/login", response_model=LoginResult)
def login(
    credentials: Credentials,
    credential_store: CredentialStore = Depends(get_credentials),
) -> LoginResult:
    """Check a username and password pair."""

    if not credential_store.verify(credentials.username, credentials.password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
        )
    return LoginResult(username=credentials.username)


@router.delete("/account", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(
    credentials: Credentials,
    credential_store: CredentialStore = Depends(get_credentials),
    store: ChatStore = Depends(get_store),
    relay: EventRelay = Depends(get_relay),
) -> Response:
    """Delete the account and all of its data, dropping any live session."""

    if not credential_store.verify(credentials.username, credentials.password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
        )
    store.delete_all_user_data(credentials.username)
    await relay.evict(credentials.username)
    logger.info("Account %s deleted", credentials.username)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
