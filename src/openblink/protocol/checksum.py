"""CRC-16 used to validate a completed program transfer.

The receiving firmware runs a reflected CRC-16 with the reflected polynomial
0xD175, seed 0xFFFF and no final XOR. These parameters are part of the wire
contract with the device and must not change.
"""

from __future__ import annotations

import crcmod

CRC16_POLY_REFLECTED = 0xD175
CRC16_INIT = 0xFFFF

# crcmod takes the polynomial in normal (MSB-first) form with the implicit
# x^16 term; 0xAE8B is the bit reversal of 0xD175.
_CRC16_POLY_NORMAL = 0x1AE8B

_crc16_func = crcmod.mkCrcFun(_CRC16_POLY_NORMAL, initCrc=CRC16_INIT, rev=True, xorOut=0x0000)


def crc16(data: bytes) -> int:
    """Compute the program checksum over a complete buffer.

    Args:
        data: Entire program buffer

    Returns:
        16-bit checksum
    """
    return _crc16_func(bytes(data))
