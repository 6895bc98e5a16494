"""BLE connection management."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import replace
from typing import TYPE_CHECKING

from bleak import BleakClient
from bleak_retry_connector import BleakClientWithServiceCache, establish_connection

from ..discovery import DeviceSelector, select_first_device
from ..exceptions import (
    BLEConnectionError,
    BLETimeoutError,
    ConnectionCancelled,
    SelectionCancelled,
)
from ..models.enums import ConnectionState
from ..models.session import Session
from ..protocol import (
    CONSOLE_CHARACTERISTIC_UUID,
    DEFAULT_MTU,
    NEGOTIATED_MTU_CHARACTERISTIC_UUID,
    PROGRAM_CHARACTERISTIC_UUID,
    SERVICE_UUID,
)
from .mtu import MtuNegotiator

if TYPE_CHECKING:
    from bleak.backends.device import BLEDevice

_LOGGER = logging.getLogger(__name__)

StateListener = Callable[[ConnectionState], None]
LossListener = Callable[["BLEDevice"], None]
DisconnectListener = Callable[[], None]
ConsoleCallback = Callable[[str], None]


def _log_console(text: str) -> None:
    _LOGGER.info("Console: %s", text)


class ConnectionManager:
    """Owns the single OpenBlink connection and its lifecycle state.

    Features:
    - Automatic retry logic with bleak-retry-connector
    - Service caching for faster reconnections
    - MTU negotiation before the connection is reported as usable
    - Console notifications forwarded to a callback
    - Unexpected-loss events for a reconnection supervisor

    The manager never reconnects on its own; see ReconnectionSupervisor.
    """

    def __init__(
            self,
            timeout: float = 10.0,
            max_attempts: int = 4,
            use_services_cache: bool = True,
            scan_timeout: float = 10.0,
            console_callback: ConsoleCallback | None = None,
            negotiator: MtuNegotiator | None = None,
    ):
        """Initialize connection manager.

        Args:
            timeout: Connection timeout in seconds (default: 10)
            max_attempts: Maximum connection attempts for bleak-retry-connector (default: 4)
            use_services_cache: Enable GATT service caching for faster reconnections (default: True)
            scan_timeout: Scan duration for the default device selector (default: 10)
            console_callback: Receives decoded console lines (default: log at INFO)
            negotiator: MTU negotiator (default: request, then advertised, then 20)
        """
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.use_services_cache = use_services_cache
        self.scan_timeout = scan_timeout
        self.console_callback = console_callback or _log_console
        self.negotiator = negotiator or MtuNegotiator()

        self._session: Session | None = None
        self._device: BLEDevice | None = None
        self._state = ConnectionState.DISCONNECTED
        self._user_disconnect = False
        self._generation = 0
        self._state_listeners: list[StateListener] = []
        self._loss_listeners: list[LossListener] = []
        self._disconnect_listeners: list[DisconnectListener] = []

    async def __aenter__(self) -> ConnectionManager:
        """Connect to the first device found (context manager entry)."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Disconnect from device (context manager exit)."""
        await self.disconnect()

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def session(self) -> Session | None:
        """Live session, if connected."""
        return self._session

    @property
    def device(self) -> BLEDevice | None:
        """Last selected device (kept across unexpected loss)."""
        return self._device

    @property
    def mtu(self) -> int:
        """Negotiated MTU of the live session, or the default."""
        return self._session.mtu if self._session else DEFAULT_MTU

    @property
    def is_connected(self) -> bool:
        """Check if a session is live."""
        return self._session is not None and self._session.client.is_connected

    @property
    def user_initiated_disconnect(self) -> bool:
        """Whether the user asked to disconnect since the last connect."""
        return self._user_disconnect

    @property
    def generation(self) -> int:
        """Counter bumped by every user connect or disconnect."""
        return self._generation

    def add_state_listener(self, listener: StateListener) -> Callable[[], None]:
        """Register a state change listener. Returns an unsubscribe callable."""
        self._state_listeners.append(listener)
        return lambda: self._state_listeners.remove(listener)

    def add_loss_listener(self, listener: LossListener) -> Callable[[], None]:
        """Register an unexpected-loss listener. Returns an unsubscribe callable."""
        self._loss_listeners.append(listener)
        return lambda: self._loss_listeners.remove(listener)

    def add_disconnect_listener(self, listener: DisconnectListener) -> Callable[[], None]:
        """Register a listener called as soon as the user asks to disconnect.

        Returns an unsubscribe callable.
        """
        self._disconnect_listeners.append(listener)
        return lambda: self._disconnect_listeners.remove(listener)

    async def connect(self, selector: DeviceSelector | None = None) -> Session:
        """Select a device and establish a session with it.

        Args:
            selector: Async callable returning the device to use, or None
                if the user declined (default: strongest OpenBlink in range)

        Returns:
            The live session

        Raises:
            SelectionCancelled: If no device was selected
            BLEConnectionError: If connection or GATT resolution fails
            BLETimeoutError: If connection times out
            ConnectionCancelled: If disconnect() was called while connecting
        """
        if self.is_connected:
            return self._session  # Already connected
        if self._state in (ConnectionState.CONNECTING, ConnectionState.RECONNECTING):
            raise BLEConnectionError(f"Cannot connect while {self._state.value}")

        self._user_disconnect = False
        self._generation += 1
        generation = self._generation
        self._set_state(ConnectionState.CONNECTING)
        _LOGGER.info("Connecting to device...")

        if selector is None:
            selector = select_first_device(self.scan_timeout)

        try:
            device = await selector()
        except Exception as e:
            self._set_state(ConnectionState.DISCONNECTED)
            raise BLEConnectionError(f"Device selection failed: {e}") from e

        if device is None:
            self._set_state(ConnectionState.DISCONNECTED)
            _LOGGER.info("Connection cancelled: No device selected")
            raise SelectionCancelled("No device selected")

        _LOGGER.info("Selected device: %s", device.name)
        self._device = device

        try:
            session = await self._open(device)
        except BLEConnectionError as e:
            _LOGGER.warning("Connection Error: %s", e)
            if generation == self._generation:
                self._set_state(ConnectionState.DISCONNECTED)
            raise

        return await self._commit(session, generation)

    async def reconnect(self) -> Session:
        """Reopen the last selected device.

        Used by ReconnectionSupervisor. Does not touch the user-intent flag.

        Raises:
            BLEConnectionError: If there is no device or connection fails
            ConnectionCancelled: If the user disconnected meanwhile
        """
        if self._device is None:
            raise BLEConnectionError("No device to reconnect to")

        generation = self._generation
        session = await self._open(self._device)
        return await self._commit(session, generation)

    async def disconnect(self) -> None:
        """Disconnect on user request.

        Suppresses automatic reconnection. Safe to call when already
        disconnected.
        """
        self._user_disconnect = True
        self._generation += 1

        for listener in list(self._disconnect_listeners):
            listener()

        # Forget the session first so the link callback is not treated as a loss
        session, self._session = self._session, None

        if session is not None:
            _LOGGER.info("Disconnecting from device...")
            await self._close_client(session.client)

        if self._state != ConnectionState.DISCONNECTED:
            _LOGGER.info("Disconnected from device.")
        self._set_state(ConnectionState.DISCONNECTED)

    def mark_reconnecting(self) -> None:
        """Flag a pending reconnection unless the user disconnected."""
        if not self._user_disconnect:
            self._set_state(ConnectionState.RECONNECTING)

    def release(self) -> None:
        """Forget the device after reconnection is abandoned."""
        self._device = None
        self._set_state(ConnectionState.DISCONNECTED)

    async def _open(self, device: BLEDevice) -> Session:
        """Connect, resolve characteristics, negotiate MTU, start console.

        Raises:
            BLEConnectionError: If any step fails (client is closed again)
            BLETimeoutError: If connection times out
        """
        client: BleakClient | None = None
        try:
            _LOGGER.debug(
                "Connecting to %s with bleak-retry-connector (max_attempts=%d)",
                device.address,
                self.max_attempts,
            )

            client = await establish_connection(
                client_class=BleakClientWithServiceCache,
                device=device,
                name=device.name or device.address,
                disconnected_callback=self._handle_disconnect,
                max_attempts=self.max_attempts,
                use_services_cache=self.use_services_cache,
                timeout=self.timeout,
            )
            _LOGGER.debug("Connected to GATT server")

            session = self._resolve_session(client, device)

            mtu = await self.negotiator.negotiate(session)
            session = replace(session, mtu=mtu)

            await client.start_notify(
                session.console_characteristic,
                self._console_notification,
            )
            _LOGGER.debug("Console notifications started")

        except asyncio.CancelledError:
            await self._close_client(client)
            raise
        except asyncio.TimeoutError as e:
            await self._close_client(client)
            raise BLETimeoutError(
                f"Connection timeout after {self.timeout}s"
            ) from e
        except BLEConnectionError:
            await self._close_client(client)
            raise
        except Exception as e:
            await self._close_client(client)
            raise BLEConnectionError(
                f"Failed to connect: {e}"
            ) from e

        return session

    async def _commit(self, session: Session, generation: int) -> Session:
        """Publish a freshly opened session unless the user intervened."""
        if self._user_disconnect or generation != self._generation:
            _LOGGER.info("Connection attempt was cancelled by user.")
            await self._close_client(session.client)
            raise ConnectionCancelled("Connection cancelled by user disconnect")

        self._session = session
        self._set_state(ConnectionState.CONNECTED)
        _LOGGER.info("Connected to device: %s (MTU=%d)", session.device.name, session.mtu)
        return session

    @staticmethod
    def _resolve_session(client: BleakClient, device: BLEDevice) -> Session:
        """Find the OpenBlink service and its three characteristics.

        Raises:
            BLEConnectionError: If service or a characteristic is missing
        """
        service = client.services.get_service(SERVICE_UUID)
        if not service:
            raise BLEConnectionError(
                f"Service {SERVICE_UUID} not found"
            )

        characteristics = {}
        for uuid in (
                PROGRAM_CHARACTERISTIC_UUID,
                CONSOLE_CHARACTERISTIC_UUID,
                NEGOTIATED_MTU_CHARACTERISTIC_UUID,
        ):
            characteristic = service.get_characteristic(uuid)
            if not characteristic:
                raise BLEConnectionError(f"Characteristic {uuid} not found")
            characteristics[uuid] = characteristic

        return Session(
            client=client,
            device=device,
            program_characteristic=characteristics[PROGRAM_CHARACTERISTIC_UUID],
            console_characteristic=characteristics[CONSOLE_CHARACTERISTIC_UUID],
            mtu_characteristic=characteristics[NEGOTIATED_MTU_CHARACTERISTIC_UUID],
        )

    @staticmethod
    async def _close_client(client: BleakClient | None) -> None:
        if client is None or not client.is_connected:
            return
        try:
            await client.disconnect()
        except Exception as e:
            _LOGGER.warning("Error during disconnect: %s", e)

    def _handle_disconnect(self, client: BleakClient) -> None:
        """Handle bleak's disconnected callback.

        Only a drop of the live session's client counts as an unexpected
        loss. Stale clients and user-initiated disconnects are ignored.
        """
        session = self._session
        if session is None or session.client is not client:
            _LOGGER.debug("Ignoring disconnect from inactive client")
            return

        self._session = None
        _LOGGER.info("Device disconnected: %s", session.device.name)
        self._set_state(ConnectionState.DISCONNECTED)

        for listener in list(self._loss_listeners):
            listener(session.device)

    def _console_notification(self, sender, data: bytearray) -> None:
        """Forward console output from the device.

        Args:
            sender: Characteristic that sent notification
            data: Notification data
        """
        text = bytes(data).decode("utf-8", errors="replace").strip()
        if text:
            self.console_callback(text)

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        _LOGGER.debug("Connection state: %s -> %s", self._state.value, state.value)
        self._state = state
        for listener in list(self._state_listeners):
            listener(state)
