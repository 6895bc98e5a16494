"""BLE transport: connection lifecycle, MTU and reconnection."""

from .connection import ConnectionManager
from .mtu import MtuNegotiator, read_advertised_mtu, request_mtu
from .reconnect import (
    INITIAL_RECONNECT_DELAY_MS,
    MAX_RECONNECT_ATTEMPTS,
    ReconnectionSupervisor,
    reconnect_delay_ms,
)

__all__ = [
    "ConnectionManager",
    "MtuNegotiator",
    "ReconnectionSupervisor",
    "request_mtu",
    "read_advertised_mtu",
    "reconnect_delay_ms",
    "MAX_RECONNECT_ATTEMPTS",
    "INITIAL_RECONNECT_DELAY_MS",
]
