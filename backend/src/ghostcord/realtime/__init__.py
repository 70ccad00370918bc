"""In-memory realtime layer: sessions, presence and call signalling."""

from .presence import PresenceBroadcaster
from .sessions import SessionEntry, SessionRegistry, safe_send_json
from .signaling import CALL_EVENTS, CallSignalRelay, build_signal_envelope

__all__ = [
    "SessionEntry",
    "SessionRegistry",
    "safe_send_json",
    "PresenceBroadcaster",
    "CALL_EVENTS",
    "CallSignalRelay",
    "build_signal_envelope",
]
