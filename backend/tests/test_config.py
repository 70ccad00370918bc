from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.config import Settings
from app.core.slug import allocate_server_id, slugify


def test_database_url_prefers_override(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///chat.db")

    assert Settings().database_url == "sqlite:///chat.db"


def test_database_url_is_assembled_from_parts(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("DB_HOST", "mysql.internal")
    monkeypatch.setenv("DB_NAME", "chat")

    url = Settings().database_url

    assert url.startswith("mysql+pymysql://")
    assert url.endswith("@mysql.internal:3306/chat")


def test_cors_origins_accept_comma_separated_values(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "http://a.example, http://b.example")

    origins = [str(origin).rstrip("/") for origin in Settings().cors_origins]

    assert origins == ["http://a.example", "http://b.example"]


def test_history_limit_must_be_positive(monkeypatch):
    monkeypatch.setenv("CHAT_HISTORY_LIMIT", "0")

    with pytest.raises(ValidationError):
        Settings()


def test_channel_delivery_scope_is_restricted(monkeypatch):
    monkeypatch.setenv("CHANNEL_DELIVERY_SCOPE", "everyone")

    with pytest.raises(ValidationError):
        Settings()


def test_slugify_and_id_allocation():
    assert slugify("  Hello, World!  ") == "hello-world"

    taken = {"hello-world"}
    allocated = allocate_server_id("Hello World", taken.__contains__)

    assert allocated.startswith("hello-world-")
    assert allocate_server_id("!!!", lambda candidate: False)
