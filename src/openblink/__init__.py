"""OpenBlink BLE Protocol Package.

  Pure Python package for sending mruby/c bytecode to OpenBlink BLE devices.
  """

from .device import OpenBlinkDevice
from .discovery import discover_devices, select_by_address, select_first_device
from .exceptions import (
    BLEConnectionError,
    BLETimeoutError,
    CompileError,
    ConnectionCancelled,
    NegotiationDegraded,
    OpenBlinkError,
    ProtocolError,
    ReconnectExhausted,
    SelectionCancelled,
    TransferError,
)
from .models import (
    ConnectionState,
    DataFrame,
    ProgramFrame,
    ReconnectPhase,
    ReloadFrame,
    ResetFrame,
    Session,
    TransferResult,
)
from .protocol import DEFAULT_SLOT, SERVICE_UUID, ProgramAssembler, crc16, parse_frame
from .transfer import TransferEngine
from .transport import ConnectionManager, MtuNegotiator, ReconnectionSupervisor

__version__ = "0.1.0"

__all__ = [
    # Main API
    "OpenBlinkDevice",
    "ConnectionManager",
    "ReconnectionSupervisor",
    "MtuNegotiator",
    "TransferEngine",
    "discover_devices",
    "select_first_device",
    "select_by_address",
    # Exceptions
    "OpenBlinkError",
    "SelectionCancelled",
    "BLEConnectionError",
    "BLETimeoutError",
    "ConnectionCancelled",
    "NegotiationDegraded",
    "TransferError",
    "ReconnectExhausted",
    "ProtocolError",
    "CompileError",
    # Models
    "Session",
    "ConnectionState",
    "ReconnectPhase",
    "TransferResult",
    "DataFrame",
    "ProgramFrame",
    "ReloadFrame",
    "ResetFrame",
    # Protocol
    "ProgramAssembler",
    "parse_frame",
    "crc16",
    # Constants
    "SERVICE_UUID",
    "DEFAULT_SLOT",
]
