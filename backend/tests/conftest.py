"""Shared pytest fixtures for backend tests."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

ROOT_DIR = Path(__file__).resolve().parents[1]
for path in (ROOT_DIR, ROOT_DIR / "src"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("DATABASE_AUTO_CREATE", "false")

from app.config import get_settings
from app.core.security import get_password_hash
from app.main import app
from app.models import Base
from app.services import ChatStore, EventRelay
from ghostcord.realtime import SessionRegistry


@pytest.fixture()
def test_engine() -> Iterator[Engine]:
    """Provide an in-memory SQLite engine for isolated tests."""

    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def session_factory(test_engine) -> sessionmaker[Session]:
    """Return a session factory bound to the test engine."""

    return sessionmaker(bind=test_engine, future=True)


@pytest.fixture()
def db_session(session_factory) -> Iterator[Session]:
    """Yield a SQLAlchemy session for inspecting rows directly."""

    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def store(session_factory) -> ChatStore:
    return ChatStore(session_factory)


@pytest.fixture()
def make_user(store):
    """Register users straight through the store."""

    def _make(*usernames: str) -> None:
        for username in usernames:
            store.create_user(username, get_password_hash("secret"))

    return _make


@pytest.fixture()
def relay(store) -> EventRelay:
    return EventRelay(store, SessionRegistry(), settings=get_settings())


@pytest.fixture()
def client(session_factory) -> Iterator[TestClient]:
    """Yield a TestClient whose relay runs against the in-memory database."""

    app.state.session_factory = session_factory
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        del app.state.session_factory
