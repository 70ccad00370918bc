"""Credential checks used by the signup and login endpoints."""

from __future__ import annotations

import logging

from app.core.security import get_password_hash, verify_password
from app.schemas import UserRead
from app.services.store import ChatStore

logger = logging.getLogger(__name__)


class CredentialStore:
    """Create identities and verify their passwords against the chat store."""

    def __init__(self, store: ChatStore) -> None:
        self._store = store

    def create(self, username: str, password: str) -> UserRead:
        user = self._store.create_user(username, get_password_hash(password))
        logger.info("Registered user %s", username)
        return user

    def verify(self, username: str, password: str) -> bool:
        hashed = self._store.get_password_hash(username)
        if hashed is None:
            logger.debug("Login attempt for unknown user %s", username)
            return False
        return verify_password(password, hashed)


__all__ = ["CredentialStore"]
