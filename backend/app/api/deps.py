"""FastAPI dependencies for the API layer."""

from fastapi import Depends, Request

from app.services import ChatStore, CredentialStore, EventRelay


def get_store(request: Request) -> ChatStore:
    """Return the chat store created at application startup."""

    return request.app.state.store


def get_relay(request: Request) -> EventRelay:
    return request.app.state.relay


def get_credentials(store: ChatStore = Depends(get_store)) -> CredentialStore:
    return CredentialStore(store)
