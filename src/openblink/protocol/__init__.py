"""BLE protocol implementation."""

from .checksum import CRC16_INIT, CRC16_POLY_REFLECTED, crc16
from .chunking import ProgramAssembler
from .commands import (
    ATT_OVERHEAD,
    CONSOLE_CHARACTERISTIC_UUID,
    DATA_HEADER_SIZE,
    DEFAULT_MTU,
    DEFAULT_SLOT,
    DEVICE_NAME_PREFIX,
    NEGOTIATED_MTU_CHARACTERISTIC_UUID,
    PROGRAM_CHARACTERISTIC_UUID,
    PROGRAM_HEADER_SIZE,
    PROTOCOL_VERSION,
    REQUESTED_MTU,
    SERVICE_UUID,
    CommandCode,
    build_data_command,
    build_program_command,
    build_reload_command,
    build_reset_command,
)
from .decoding import parse_frame, parse_mtu_advertisement

__all__ = [
    "CommandCode",
    "PROTOCOL_VERSION",
    "SERVICE_UUID",
    "PROGRAM_CHARACTERISTIC_UUID",
    "CONSOLE_CHARACTERISTIC_UUID",
    "NEGOTIATED_MTU_CHARACTERISTIC_UUID",
    "DEVICE_NAME_PREFIX",
    "DATA_HEADER_SIZE",
    "PROGRAM_HEADER_SIZE",
    "DEFAULT_MTU",
    "REQUESTED_MTU",
    "ATT_OVERHEAD",
    "DEFAULT_SLOT",
    "build_reset_command",
    "build_reload_command",
    "build_data_command",
    "build_program_command",
    "crc16",
    "CRC16_POLY_REFLECTED",
    "CRC16_INIT",
    "ProgramAssembler",
    "parse_frame",
    "parse_mtu_advertisement",
]
