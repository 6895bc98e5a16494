"""Frame and characteristic value decoding."""

from __future__ import annotations

import struct

from ..exceptions import ProtocolError
from ..models.frames import DataFrame, Frame, ProgramFrame, ReloadFrame, ResetFrame
from .commands import (
    DATA_HEADER_SIZE,
    HEADER_SIZE,
    PROGRAM_HEADER_SIZE,
    PROTOCOL_VERSION,
    CommandCode,
)


def parse_frame(data: bytes) -> Frame:
    """Decode one frame as the device sees it.

    Args:
        data: Raw bytes written to the program characteristic

    Returns:
        Decoded frame

    Raises:
        ProtocolError: If version, command or length is invalid
    """
    if len(data) < HEADER_SIZE:
        raise ProtocolError(f"Frame too short: {len(data)} bytes (need at least {HEADER_SIZE})")

    version, command = data[0], data[1]
    if version != PROTOCOL_VERSION:
        raise ProtocolError(
            f"Unsupported protocol version: expected 0x{PROTOCOL_VERSION:02x}, got 0x{version:02x}"
        )

    try:
        code = CommandCode(command)
    except ValueError as e:
        raise ProtocolError(f"Unknown command: 0x{command:02x}") from e

    if code in (CommandCode.RESET, CommandCode.RELOAD):
        if len(data) != HEADER_SIZE:
            raise ProtocolError(f"{code.name} frame must be {HEADER_SIZE} bytes, got {len(data)}")
        return ResetFrame() if code == CommandCode.RESET else ReloadFrame()

    if code == CommandCode.DATA:
        if len(data) < DATA_HEADER_SIZE:
            raise ProtocolError(
                f"DATA frame too short: {len(data)} bytes (need at least {DATA_HEADER_SIZE})"
            )
        offset, length = struct.unpack("<HH", data[2:6])
        payload = bytes(data[DATA_HEADER_SIZE:])
        if len(payload) != length:
            raise ProtocolError(
                f"DATA length mismatch: header says {length}, payload is {len(payload)}"
            )
        return DataFrame(offset=offset, length=length, payload=payload)

    if len(data) != PROGRAM_HEADER_SIZE:
        raise ProtocolError(f"PROGRAM frame must be {PROGRAM_HEADER_SIZE} bytes, got {len(data)}")
    length, crc, slot, reserved = struct.unpack("<HHBB", data[2:8])
    return ProgramFrame(length=length, crc=crc, slot=slot, reserved=reserved)


def parse_mtu_advertisement(data: bytes) -> int:
    """Decode the raw MTU advertised by the device.

    Format: [mtu:2] little-endian uint16

    Raises:
        ProtocolError: If the value is shorter than 2 bytes
    """
    if len(data) < 2:
        raise ProtocolError(f"MTU value too short: {len(data)} bytes (need 2)")
    return struct.unpack("<H", data[0:2])[0]
