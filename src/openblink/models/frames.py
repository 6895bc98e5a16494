"""Decoded OpenBlink protocol frames."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ResetFrame:
    """Request device reboot."""


@dataclass(frozen=True)
class ReloadFrame:
    """Request device reload of the staged program."""


@dataclass(frozen=True)
class DataFrame:
    """One chunk of the program buffer.

    Attributes:
        offset: Position of the chunk in the program buffer
        length: Declared payload length
        payload: Chunk bytes
    """
    offset: int
    length: int
    payload: bytes

    @property
    def end(self) -> int:
        """Offset one past the last byte of this chunk."""
        return self.offset + self.length


@dataclass(frozen=True)
class ProgramFrame:
    """Finalize a completed transfer into a storage slot."""
    length: int
    crc: int
    slot: int
    reserved: int = 0


Frame = ResetFrame | ReloadFrame | DataFrame | ProgramFrame
