"""BLE protocol commands for OpenBlink devices."""

from __future__ import annotations

import struct
from enum import IntEnum


class CommandCode(IntEnum):
    """Frame command codes (ASCII)."""

    RESET = ord("R")      # Reboot device
    RELOAD = ord("L")     # Reload staged program
    DATA = ord("D")       # Program data chunk
    PROGRAM = ord("P")    # Finalize transfer into a slot


# Protocol constants
PROTOCOL_VERSION = 0x01
SERVICE_UUID = "227da52c-e13a-412b-befb-ba2256bb7fbe"
PROGRAM_CHARACTERISTIC_UUID = "ad9fdd56-1135-4a84-923c-ce5a244385e7"
CONSOLE_CHARACTERISTIC_UUID = "a015b3de-185a-4252-aa04-7a87d38ce148"
NEGOTIATED_MTU_CHARACTERISTIC_UUID = "ca141151-3113-448b-b21a-6a6203d253ff"
DEVICE_NAME_PREFIX = "OpenBlink"

# Framing constants
HEADER_SIZE = 2  # version + command
DATA_HEADER_SIZE = 6  # version + command + offset:2 + length:2
PROGRAM_HEADER_SIZE = 8
MAX_FIELD_U16 = 0xFFFF
DEFAULT_SLOT = 2

# MTU constants
DEFAULT_MTU = 20  # Minimum guaranteed payload of a BLE 4.0 link
REQUESTED_MTU = 512
ATT_OVERHEAD = 3  # Subtracted from the advertised raw MTU

_HEADER = struct.Struct("<BB")
_DATA_HEADER = struct.Struct("<BBHH")
_PROGRAM = struct.Struct("<BBHHBB")


def build_reset_command() -> bytes:
    """Build command to reboot the device.

    Returns:
        Command bytes: [0x01]['R']
    """
    return _HEADER.pack(PROTOCOL_VERSION, CommandCode.RESET)


def build_reload_command() -> bytes:
    """Build command to reload the currently staged program.

    Returns:
        Command bytes: [0x01]['L']
    """
    return _HEADER.pack(PROTOCOL_VERSION, CommandCode.RELOAD)


def build_data_command(offset: int, payload: bytes) -> bytes:
    """Build command carrying one chunk of the program buffer.

    Args:
        offset: Position of this chunk in the program buffer
        payload: Chunk bytes

    Returns:
        Command bytes

    Format:
        [version:1][cmd:1][offset:2][length:2][payload:variable]
        - offset, length: little-endian uint16
    """
    if not 0 <= offset <= MAX_FIELD_U16:
        raise ValueError(f"Offset {offset} does not fit in uint16")
    if len(payload) > MAX_FIELD_U16:
        raise ValueError(f"Chunk size {len(payload)} exceeds maximum {MAX_FIELD_U16}")

    header = _DATA_HEADER.pack(PROTOCOL_VERSION, CommandCode.DATA, offset, len(payload))
    return header + bytes(payload)


def build_program_command(length: int, crc: int, slot: int = DEFAULT_SLOT) -> bytes:
    """Build command to finalize a completed transfer.

    Args:
        length: Total program length in bytes
        crc: CRC-16 of the whole program buffer
        slot: Destination storage slot on the device

    Returns:
        Command bytes

    Format:
        [version:1][cmd:1][length:2][crc:2][slot:1][reserved:1]
        - length, crc: little-endian uint16
        - reserved: always 0
    """
    if not 0 <= length <= MAX_FIELD_U16:
        raise ValueError(f"Program length {length} does not fit in uint16")
    if not 0 <= crc <= MAX_FIELD_U16:
        raise ValueError(f"CRC 0x{crc:x} does not fit in uint16")
    if not 0 <= slot <= 0xFF:
        raise ValueError(f"Slot {slot} does not fit in uint8")

    return _PROGRAM.pack(PROTOCOL_VERSION, CommandCode.PROGRAM, length, crc, slot, 0)
