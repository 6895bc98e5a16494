"""OpenBlink device discovery and selection."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from bleak import BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData

from .protocol import DEVICE_NAME_PREFIX, SERVICE_UUID

_LOGGER = logging.getLogger(__name__)

DeviceSelector = Callable[[], Awaitable["BLEDevice | None"]]


def is_openblink_device(device: BLEDevice, advertisement: AdvertisementData) -> bool:
    """Match the filters used for device selection.

    A device matches when its name starts with "OpenBlink" or it advertises
    the OpenBlink service.
    """
    name = device.name or advertisement.local_name or ""
    if name.startswith(DEVICE_NAME_PREFIX):
        return True
    return SERVICE_UUID in (uuid.lower() for uuid in advertisement.service_uuids)


async def discover_devices(timeout: float = 10.0) -> list[BLEDevice]:
    """Scan for nearby OpenBlink devices.

    Args:
        timeout: Scan duration in seconds (default: 10)

    Returns:
        Matching devices, strongest signal first
    """
    found = await BleakScanner.discover(timeout=timeout, return_adv=True)

    matches = [
        (device, advertisement)
        for device, advertisement in found.values()
        if is_openblink_device(device, advertisement)
    ]
    matches.sort(key=lambda item: item[1].rssi, reverse=True)

    _LOGGER.debug("Discovered %d OpenBlink device(s)", len(matches))
    return [device for device, _ in matches]


def select_first_device(timeout: float = 10.0) -> DeviceSelector:
    """Selector that picks the strongest OpenBlink device in range."""

    async def _select() -> BLEDevice | None:
        devices = await discover_devices(timeout=timeout)
        return devices[0] if devices else None

    return _select


def select_by_address(address: str, timeout: float = 10.0) -> DeviceSelector:
    """Selector that picks one device by MAC address (or platform UUID)."""

    async def _select() -> BLEDevice | None:
        return await BleakScanner.find_device_by_address(address, timeout=timeout)

    return _select
