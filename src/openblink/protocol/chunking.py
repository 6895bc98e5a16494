"""Receiver-side program assembly for the OpenBlink protocol."""

from __future__ import annotations

from ..exceptions import ProtocolError
from ..models.frames import DataFrame, ProgramFrame
from .checksum import crc16
from .decoding import parse_frame


class ProgramAssembler:
    """Stages a program from DATA frames the way the device firmware does.

    The device keeps a single staging buffer:
    - DATA frames must arrive in order with no gaps or overlap
    - PROGRAM finalizes the buffer after checking total length and CRC-16
    """

    def __init__(self) -> None:
        self.buffer = bytearray()
        self.frames_received = 0
        self.program: bytes | None = None
        self.slot: int | None = None

    def add_frame(self, data: bytes) -> bool:
        """Add one raw frame.

        Args:
            data: Raw bytes written to the program characteristic

        Returns:
            True if the frame completed the program

        Raises:
            ProtocolError: If frames arrive out of order or the checksum fails
        """
        frame = parse_frame(data)

        if isinstance(frame, DataFrame):
            if frame.offset != len(self.buffer):
                raise ProtocolError(
                    f"Out-of-order DATA: expected offset {len(self.buffer)}, got {frame.offset}"
                )
            self.buffer.extend(frame.payload)
            self.frames_received += 1
            return False

        if isinstance(frame, ProgramFrame):
            self._finalize(frame)
            return True

        # RESET / RELOAD do not touch the staging buffer
        return False

    def _finalize(self, frame: ProgramFrame) -> None:
        if frame.length != len(self.buffer):
            raise ProtocolError(
                f"Length mismatch: PROGRAM says {frame.length}, staged {len(self.buffer)}"
            )

        actual = crc16(self.buffer)
        if actual != frame.crc:
            raise ProtocolError(
                f"CRC mismatch: PROGRAM says 0x{frame.crc:04x}, computed 0x{actual:04x}"
            )

        self.program = bytes(self.buffer)
        self.slot = frame.slot

    def get_program(self) -> bytes:
        """Get the finalized program.

        Raises:
            ProtocolError: If no PROGRAM frame has been accepted yet
        """
        if self.program is None:
            raise ProtocolError(
                f"Assembly incomplete: have {len(self.buffer)} bytes, no PROGRAM frame"
            )
        return self.program

    @property
    def is_complete(self) -> bool:
        """Check if a PROGRAM frame has been accepted."""
        return self.program is not None
