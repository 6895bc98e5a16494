"""Data models for OpenBlink devices."""

from .enums import ConnectionState, ReconnectPhase
from .frames import DataFrame, Frame, ProgramFrame, ReloadFrame, ResetFrame
from .session import Session
from .transfer import TransferResult

__all__ = [
    "ConnectionState",
    "DataFrame",
    "Frame",
    "ProgramFrame",
    "ReconnectPhase",
    "ReloadFrame",
    "ResetFrame",
    "Session",
    "TransferResult",
]
