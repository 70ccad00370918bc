"""Core utilities for the GhostCord backend."""

from .errors import (
    ConflictError,
    ForbiddenError,
    InvalidEventError,
    NotFoundError,
    NotJoinedError,
    PersistenceError,
    RelayError,
    UnreachableError,
)

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
