"""Schemas describing servers, their channels and members."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ServerRead(BaseModel):
    """Server projection joined with channel names and member usernames."""

    id: str
    name: str
    owner: str
    channels: list[str] = Field(default_factory=list)
    members: list[str] = Field(default_factory=list)
    created_at: datetime | None = None


class ChannelRead(BaseModel):
    """Channel inside a server."""

    id: int
    server_id: str
    name: str
