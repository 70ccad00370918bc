"""Inbound websocket event payloads.

Every frame is a JSON object with a ``type`` key naming the event kind; the
remaining keys are validated with the model registered for that kind.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, constr, field_validator

Name = constr(strip_whitespace=True, min_length=1, max_length=128)
Username = constr(strip_whitespace=True, min_length=1, max_length=64)
ServerId = constr(strip_whitespace=True, min_length=1, max_length=64)


class _Event(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class MessageBody(BaseModel):
    """Message content; clients may attach extra presentation keys."""

    model_config = ConfigDict(extra="allow")

    text: constr(strip_whitespace=True, min_length=1)


class JoinEvent(_Event):
    name: Username


class ChannelMessageEvent(_Event):
    server: ServerId
    channel: Name
    msg: MessageBody

    @field_validator("msg", mode="before")
    @classmethod
    def coerce_plain_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"text": value}
        return value


class GlobalMessageEvent(_Event):
    text: constr(strip_whitespace=True, min_length=1)
    time: str | None = None


class DirectMessageEvent(_Event):
    to: Username
    msg: MessageBody

    @field_validator("msg", mode="before")
    @classmethod
    def coerce_plain_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"text": value}
        return value


class HistoryQuery(_Event):
    server: ServerId
    channel: Name


class DirectHistoryQuery(_Event):
    peer: Username = Field(alias="with")


class ServerSpec(_Event):
    name: Name
    owner: Username | None = None


class CreateServerEvent(_Event):
    server_id: ServerId | None = Field(default=None, alias="serverId")
    server: ServerSpec


class JoinServerEvent(_Event):
    server_id: ServerId = Field(alias="serverId")
    username: Username | None = None


class CreateChannelEvent(_Event):
    server_id: ServerId = Field(alias="serverId")
    name: Name


class FriendTargetEvent(_Event):
    to: Username


class RemoveFriendEvent(_Event):
    username: Username


class CallSignalEvent(BaseModel):
    """Call-setup message; everything except ``to`` is relayed untouched."""

    model_config = ConfigDict(extra="allow")

    to: Username
