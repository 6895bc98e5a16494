from __future__ import annotations

from enum import Enum


class ConnectionState(str, Enum):
    """Lifecycle state of the single peer connection."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


class ReconnectPhase(str, Enum):
    """Phase of the reconnection supervisor."""
    IDLE = "idle"
    BACKOFF = "backoff"        # Waiting for or running an attempt
    GIVING_UP = "giving_up"    # Attempts exhausted, manual reconnect required
