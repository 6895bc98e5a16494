"""Fake bleak objects shared by the unit tests."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from openblink.models.session import Session
from openblink.protocol import (
    CONSOLE_CHARACTERISTIC_UUID,
    NEGOTIATED_MTU_CHARACTERISTIC_UUID,
    PROGRAM_CHARACTERISTIC_UUID,
    SERVICE_UUID,
)


class FakeDevice:
    def __init__(self, name: str = "OpenBlink_1234", address: str = "AA:BB:CC:DD:EE:FF"):
        self.name = name
        self.address = address


class FakeCharacteristic:
    def __init__(self, uuid: str, properties: list[str]):
        self.uuid = uuid
        self.properties = properties


class FakeService:
    def __init__(self, uuid: str, characteristics: list[FakeCharacteristic]):
        self.uuid = uuid
        self.characteristics = characteristics

    def get_characteristic(self, uuid: str) -> FakeCharacteristic | None:
        for characteristic in self.characteristics:
            if characteristic.uuid == uuid:
                return characteristic
        return None


class FakeServices:
    def __init__(self, services: list[FakeService]):
        self._services = {service.uuid: service for service in services}

    def get_service(self, uuid: str) -> FakeService | None:
        return self._services.get(uuid)


def openblink_service(
        write_without_response: bool = True,
        omit: str | None = None,
) -> FakeService:
    program_properties = ["write"]
    if write_without_response:
        program_properties.append("write-without-response")

    characteristics = [
        FakeCharacteristic(PROGRAM_CHARACTERISTIC_UUID, program_properties),
        FakeCharacteristic(CONSOLE_CHARACTERISTIC_UUID, ["notify"]),
        FakeCharacteristic(NEGOTIATED_MTU_CHARACTERISTIC_UUID, ["read"]),
    ]
    characteristics = [c for c in characteristics if c.uuid != omit]
    return FakeService(SERVICE_UUID, characteristics)


class FakeClient:
    """Minimal stand-in for BleakClient.

    fail_on_write is the 0-based index of the write that raises.
    """

    def __init__(
            self,
            services: list[FakeService] | None = None,
            mtu_value: bytes | Exception = b"\x17\x00",
            fail_on_write: int | None = None,
    ):
        self.services = FakeServices(services if services is not None else [openblink_service()])
        self.mtu_value = mtu_value
        self.fail_on_write = fail_on_write
        self.is_connected = True
        self.disconnected_callback: Callable[[FakeClient], None] | None = None

        self.writes: list[tuple[bytes, bool]] = []
        self.write_attempts = 0
        self.notify_callbacks: dict[str, Callable] = {}
        self.disconnect_calls = 0

    async def write_gatt_char(self, characteristic, data: bytes, response: bool = False) -> None:
        index = self.write_attempts
        self.write_attempts += 1
        if self.fail_on_write is not None and index == self.fail_on_write:
            raise OSError("GATT write failed")
        self.writes.append((bytes(data), response))

    async def read_gatt_char(self, characteristic) -> bytearray:
        if isinstance(self.mtu_value, Exception):
            raise self.mtu_value
        return bytearray(self.mtu_value)

    async def start_notify(self, characteristic, callback) -> None:
        self.notify_callbacks[characteristic.uuid] = callback

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.is_connected = False
        if self.disconnected_callback:
            self.disconnected_callback(self)

    def drop(self) -> None:
        """Simulate the link dropping without a local disconnect."""
        self.is_connected = False
        if self.disconnected_callback:
            self.disconnected_callback(self)

    @property
    def frames(self) -> list[bytes]:
        return [data for data, _ in self.writes]


def make_session(
        client: FakeClient | None = None,
        mtu: int = 20,
        write_without_response: bool = True,
) -> Session:
    client = client or FakeClient()
    service = openblink_service(write_without_response=write_without_response)
    return Session(
        client=client,
        device=FakeDevice(),
        program_characteristic=service.get_characteristic(PROGRAM_CHARACTERISTIC_UUID),
        console_characteristic=service.get_characteristic(CONSOLE_CHARACTERISTIC_UUID),
        mtu_characteristic=service.get_characteristic(NEGOTIATED_MTU_CHARACTERISTIC_UUID),
        mtu=mtu,
    )


@pytest.fixture
def device() -> FakeDevice:
    return FakeDevice()


@pytest.fixture
def patch_establish(monkeypatch: pytest.MonkeyPatch):
    """Replace establish_connection with a queue of fake outcomes.

    Each queued item is a FakeClient to return or an exception to raise.
    Returns the list of keyword arguments each call received.
    """

    def _patch(outcomes: list[FakeClient | BaseException]) -> list[dict]:
        calls: list[dict] = []

        async def fake_establish(client_class, device, name, disconnected_callback=None, **kwargs):
            calls.append({"device": device, "name": name, **kwargs})
            outcome = outcomes.pop(0)
            if isinstance(outcome, BaseException):
                raise outcome
            outcome.is_connected = True
            outcome.disconnected_callback = disconnected_callback
            return outcome

        monkeypatch.setattr(
            "openblink.transport.connection.establish_connection", fake_establish
        )
        return calls

    return _patch
