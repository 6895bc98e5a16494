"""Transfer outcome model."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TransferResult:
    """Summary of a completed program transfer.

    Attributes:
        length: Program length in bytes
        crc: CRC-16 sent in the PROGRAM frame
        slot: Destination slot
        mtu: MTU the transfer was chunked for
        data_frames: Number of DATA frames written
        reloaded: Whether the follow-up RELOAD write succeeded
    """
    length: int
    crc: int
    slot: int
    mtu: int
    data_frames: int
    reloaded: bool = True
