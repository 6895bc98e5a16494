"""Exceptions raised by the OpenBlink BLE package."""

from __future__ import annotations


class OpenBlinkError(Exception):
    """Base exception for all OpenBlink errors."""


class SelectionCancelled(OpenBlinkError):
    """No device was selected.

    This is a benign cancellation, not a link failure.
    """


class BLEConnectionError(OpenBlinkError):
    """Link establishment or GATT resolution failed."""


class BLETimeoutError(BLEConnectionError):
    """A BLE operation timed out."""


class ProtocolError(OpenBlinkError):
    """A frame violates the OpenBlink wire format."""


class NegotiationDegraded(OpenBlinkError):
    """An MTU strategy was unavailable or failed.

    Never escapes MtuNegotiator; the next strategy is tried instead.
    """


class TransferError(OpenBlinkError):
    """A frame write failed mid-transfer.

    The transfer is aborted and must be restarted from offset 0.

    Attributes:
        offset: Byte offset of the frame that failed to send
        command: Command code of the failed frame
    """

    def __init__(self, message: str, offset: int, command: int):
        super().__init__(message)
        self.offset = offset
        self.command = command


class ReconnectExhausted(OpenBlinkError):
    """All automatic reconnection attempts failed."""

    def __init__(self, attempts: int):
        super().__init__(
            f"Max reconnection attempts reached ({attempts}). Please reconnect manually."
        )
        self.attempts = attempts


class ConnectionCancelled(OpenBlinkError):
    """A connection attempt resolved after the user disconnected.

    The freshly opened link has already been closed.
    """


class CompileError(OpenBlinkError):
    """The bytecode compiler reported failure."""

    def __init__(self, exit_code: int):
        super().__init__(f"mrbc failed with exit code: {exit_code}")
        self.exit_code = exit_code
