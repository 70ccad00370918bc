"""Point-to-point relay for call-setup messages.

Offers, answers and ICE candidates are opaque to the backend: they are
forwarded to the addressed identity with the sender attached and nothing is
retained between messages.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

from app.core.errors import UnreachableError

from .sessions import SessionRegistry, safe_send_json

logger = logging.getLogger(__name__)

CALL_EVENTS = frozenset({"callUser", "answerCall", "iceCandidate", "endCall"})
ROUTING_KEYS = frozenset({"type", "to", "from"})


def build_signal_envelope(kind: str, sender: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy the client payload minus routing keys and stamp the sender."""

    body: Dict[str, Any] = {"type": kind, "from": sender}
    for key, value in payload.items():
        if key in ROUTING_KEYS:
            continue
        body[key] = value
    return body


class CallSignalRelay:
    """Forward call signalling between two bound identities."""

    def __init__(self, registry: SessionRegistry) -> None:
        self._registry = registry

    async def forward(
        self, kind: str, sender: str, target: str, payload: Mapping[str, Any]
    ) -> None:
        if kind not in CALL_EVENTS:
            raise ValueError(f"Unsupported call event: {kind}")
        connection = self._registry.lookup(target)
        if connection is None:
            logger.debug("Dropping %s from %s: %s is offline", kind, sender, target)
            raise UnreachableError(target)
        if not await safe_send_json(connection, build_signal_envelope(kind, sender, payload)):
            raise UnreachableError(target)


__all__ = ["CALL_EVENTS", "CallSignalRelay", "build_signal_envelope"]
