"""Main OpenBlink BLE device class."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from .discovery import DeviceSelector
from .exceptions import BLEConnectionError, CompileError
from .models.enums import ConnectionState
from .models.session import Session
from .models.transfer import TransferResult
from .protocol import DEFAULT_SLOT
from .transfer import TransferEngine
from .transport import ConnectionManager, ReconnectionSupervisor

_LOGGER = logging.getLogger(__name__)

Compiler = Callable[[str], "tuple[int, bytes]"]


class OpenBlinkDevice:
    """OpenBlink BLE device running mruby/c.

    Main API for flashing bytecode to an OpenBlink board. Unexpected link
    loss is handled by automatic reconnection with exponential backoff.

    Usage:
        async with OpenBlinkDevice() as device:
            await device.send_program(bytecode)

        # Compile and send in one step
        async with OpenBlinkDevice(selector=select_by_address(mac)) as device:
            await device.build_and_send(source, compiler=mrbc)
    """

    def __init__(
            self,
            selector: DeviceSelector | None = None,
            connection: ConnectionManager | None = None,
            auto_reconnect: bool = True,
            timeout: float = 10.0,
    ):
        """Initialize OpenBlink device.

        Args:
            selector: Device selector used by connect() (default: first OpenBlink in range)
            connection: Preconfigured connection manager
            auto_reconnect: Reconnect automatically after unexpected loss (default: True)
            timeout: BLE connection timeout in seconds (default: 10)
        """
        self._selector = selector
        self._connection = connection or ConnectionManager(timeout=timeout)
        self._supervisor = ReconnectionSupervisor(self._connection) if auto_reconnect else None
        self._engine = TransferEngine()

    async def __aenter__(self) -> OpenBlinkDevice:
        """Connect to the device."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Disconnect from device."""
        await self.disconnect()

    @property
    def connection(self) -> ConnectionManager:
        """Underlying connection manager."""
        return self._connection

    @property
    def supervisor(self) -> ReconnectionSupervisor | None:
        """Reconnection supervisor, if auto-reconnect is enabled."""
        return self._supervisor

    @property
    def state(self) -> ConnectionState:
        return self._connection.state

    @property
    def mtu(self) -> int:
        return self._connection.mtu

    async def connect(self, selector: DeviceSelector | None = None) -> Session:
        """Select a device and connect.

        Raises:
            SelectionCancelled: If no device was selected
            BLEConnectionError: If connection fails
        """
        return await self._connection.connect(selector or self._selector)

    async def disconnect(self) -> None:
        """Disconnect and cancel any pending reconnection."""
        await self._connection.disconnect()

    async def send_reset(self) -> None:
        """Reboot the device."""
        await self._engine.send_reset(self._require_session())

    async def send_reload(self) -> bool:
        """Reload the staged program.

        Returns:
            True if the RELOAD frame was written
        """
        return await self._engine.send_reload(self._require_session())

    async def send_program(self, bytecode: bytes, slot: int = DEFAULT_SLOT) -> TransferResult:
        """Send compiled bytecode and activate it.

        Args:
            bytecode: Compiled mruby bytecode (.mrb contents)
            slot: Destination slot (default: 2)

        Raises:
            BLEConnectionError: If not connected
            TransferError: If a frame write fails (restart from scratch)
        """
        session = self._require_session()

        start = time.perf_counter()
        result = await self._engine.send(session, bytecode, slot)
        elapsed_ms = (time.perf_counter() - start) * 1000

        _LOGGER.info("Sending bytecode: Complete! (%.2fms)", elapsed_ms)
        return result

    async def build_and_send(
            self,
            source: str,
            compiler: Compiler,
            slot: int = DEFAULT_SLOT,
    ) -> TransferResult:
        """Compile Ruby source and send the bytecode.

        Args:
            source: Ruby source code
            compiler: Callable returning (exit_code, bytecode); 0 means success
            slot: Destination slot (default: 2)

        Raises:
            BLEConnectionError: If not connected
            CompileError: If the compiler returns a non-zero exit code
            TransferError: If a frame write fails
        """
        self._require_session()

        start = time.perf_counter()
        exit_code, bytecode = compiler(source)
        elapsed_ms = (time.perf_counter() - start) * 1000

        if exit_code != 0:
            raise CompileError(exit_code)
        _LOGGER.info("mrbc success!: (%.2fms)", elapsed_ms)

        return await self.send_program(bytecode, slot)

    def _require_session(self) -> Session:
        session = self._connection.session
        if session is None:
            raise BLEConnectionError("Not connected to device")
        return session
