"""Error taxonomy shared by the store, the services and the event relay."""

from __future__ import annotations


class RelayError(Exception):
    """Failure that is reported back to the originating connection."""

    code = "error"
    event_type = "error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def to_payload(self, event: str | None) -> dict[str, str | None]:
        return {"type": self.event_type, "code": self.code, "event": event, "detail": self.detail}


class NotFoundError(RelayError):
    """Target identity, server or channel does not exist."""

    code = "not_found"


class ConflictError(RelayError):
    """Duplicate username, server id, channel or friend relation."""

    code = "conflict"


class UnreachableError(RelayError):
    """Target identity has no bound connection.

    This is a soft condition: it is surfaced as its own ``unreachable`` event
    rather than as an ``error`` and never retried.
    """

    code = "unreachable"
    event_type = "unreachable"

    def __init__(self, target: str) -> None:
        super().__init__(f"User {target} is not online")
        self.target = target

    def to_payload(self, event: str | None) -> dict[str, str | None]:
        payload = super().to_payload(event)
        payload["to"] = self.target
        return payload


class PersistenceError(RelayError):
    """A durable-store operation failed."""

    code = "persistence_failure"

    def __init__(self, operation: str, detail: str | None = None) -> None:
        super().__init__(detail or f"Could not complete {operation}")
        self.operation = operation


class InvalidEventError(RelayError):
    """Inbound payload is malformed or semantically invalid."""

    code = "invalid_event"


class NotJoinedError(RelayError):
    """Event received on a connection that has not sent ``join`` yet."""

    code = "not_joined"


class ForbiddenError(RelayError):
    """Caller is not allowed to perform the operation."""

    code = "forbidden"


__all__ = [
    "RelayError",
    "NotFoundError",
    "ConflictError",
    "UnreachableError",
    "PersistenceError",
    "InvalidEventError",
    "NotJoinedError",
    "ForbiddenError",
]
