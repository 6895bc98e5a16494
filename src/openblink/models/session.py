"""Live connection handle."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..protocol.commands import DATA_HEADER_SIZE, DEFAULT_MTU

if TYPE_CHECKING:
    from bleak import BleakClient
    from bleak.backends.characteristic import BleakGATTCharacteristic
    from bleak.backends.device import BLEDevice


@dataclass(frozen=True)
class Session:
    """One active peer connection and its protocol characteristics.

    Owned by ConnectionManager. Other components receive it per call and
    must not keep it.
    """

    client: BleakClient
    device: BLEDevice
    program_characteristic: BleakGATTCharacteristic
    console_characteristic: BleakGATTCharacteristic
    mtu_characteristic: BleakGATTCharacteristic
    mtu: int = DEFAULT_MTU

    @property
    def payload_size(self) -> int:
        """Usable DATA payload bytes per frame."""
        return self.mtu - DATA_HEADER_SIZE

    @property
    def supports_write_without_response(self) -> bool:
        """Whether the program characteristic accepts unacknowledged writes."""
        return "write-without-response" in self.program_characteristic.properties
