"""Automatic reconnection with exponential backoff."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from ..exceptions import BLEConnectionError, ConnectionCancelled, ReconnectExhausted
from ..models.enums import ReconnectPhase

if TYPE_CHECKING:
    from bleak.backends.device import BLEDevice

    from .connection import ConnectionManager

_LOGGER = logging.getLogger(__name__)

MAX_RECONNECT_ATTEMPTS = 5
INITIAL_RECONNECT_DELAY_MS = 1000
RECONNECT_DELAY_MULTIPLIER = 2

GiveUpListener = Callable[[ReconnectExhausted], None]


def reconnect_delay_ms(attempt: int) -> int:
    """Delay before the given 1-based attempt: 1000, 2000, 4000, 8000, 16000."""
    return INITIAL_RECONNECT_DELAY_MS * RECONNECT_DELAY_MULTIPLIER ** (attempt - 1)


class ReconnectionSupervisor:
    """Reconnects after unexpected link loss.

    One supervising task runs per loss event. It sleeps, asks the
    ConnectionManager to reconnect, and repeats with doubled delays until
    it succeeds or MAX_RECONNECT_ATTEMPTS is exceeded.

    A user disconnect cancels the supervising task at once and resets the
    attempt counter. The manager's user-intent flag and connection
    generation are also re-checked before each attempt and when a failed
    attempt resolves. A successful attempt is only published by the manager
    if neither changed.

    Usage:
        manager = ConnectionManager()
        supervisor = ReconnectionSupervisor(manager)
        await manager.connect()
    """

    def __init__(
            self,
            manager: ConnectionManager,
            sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Attach a supervisor to a connection manager.

        Args:
            manager: Connection manager to observe and drive
            sleep: Coroutine used for backoff waits, in seconds
        """
        self.manager = manager
        self._sleep = sleep

        self.phase = ReconnectPhase.IDLE
        self.attempt = 0
        self.last_error: ReconnectExhausted | None = None

        self._task: asyncio.Task[None] | None = None
        self._task_generation = 0
        self._give_up_listeners: list[GiveUpListener] = []
        self._unsubscribers = [
            manager.add_loss_listener(self._handle_loss),
            manager.add_disconnect_listener(self._handle_user_disconnect),
        ]

    def add_give_up_listener(self, listener: GiveUpListener) -> Callable[[], None]:
        """Register a listener for exhausted reconnection. Returns an unsubscribe callable."""
        self._give_up_listeners.append(listener)
        return lambda: self._give_up_listeners.remove(listener)

    @property
    def is_running(self) -> bool:
        """Whether a supervising task is active."""
        return self._task is not None and not self._task.done()

    async def wait(self) -> None:
        """Wait for the current supervising task to finish.

        A task stopped by a user disconnect counts as finished.
        """
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    async def close(self) -> None:
        """Stop supervising and cancel any pending reconnection."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self._stop()
        await self.wait()

    def _handle_loss(self, device: BLEDevice) -> None:
        if self.manager.user_initiated_disconnect:
            self._reset()
            return
        if self.is_running:
            if self._task_generation == self.manager.generation:
                _LOGGER.debug("Reconnection already in progress")
                return
            _LOGGER.debug("Replacing reconnection for a previous connection")
            self._stop()

        self.last_error = None
        self._task_generation = self.manager.generation
        self._task = asyncio.get_running_loop().create_task(
            self._supervise(device, self._task_generation)
        )

    def _handle_user_disconnect(self) -> None:
        if self.is_running:
            _LOGGER.debug("Stopping reconnection after user disconnect")
        self._stop()

    def _stop(self) -> None:
        """Cancel the supervising task and reset the backoff state.

        When called from inside the task itself, the task is left to notice
        the cancellation at its next check.
        """
        if self.is_running and self._task is not asyncio.current_task():
            self._task.cancel()
        self._reset()

    def _cancelled(self, generation: int) -> bool:
        return self.manager.user_initiated_disconnect or self.manager.generation != generation

    async def _supervise(self, device: BLEDevice, generation: int) -> None:
        self.attempt = 0

        while True:
            self.attempt += 1
            if self.attempt > MAX_RECONNECT_ATTEMPTS:
                self._give_up()
                return

            delay = reconnect_delay_ms(self.attempt)
            self.phase = ReconnectPhase.BACKOFF
            self.manager.mark_reconnecting()
            _LOGGER.info(
                "Attempting to reconnect to %s (%d/%d) in %dms...",
                device.name,
                self.attempt,
                MAX_RECONNECT_ATTEMPTS,
                delay,
            )

            await self._sleep(delay / 1000)

            if self._cancelled(generation):
                _LOGGER.info("Reconnect attempt was cancelled by user.")
                self._reset()
                return

            try:
                await self.manager.reconnect()
            except ConnectionCancelled:
                # Manager already closed the link it opened
                _LOGGER.info("Reconnect attempt was cancelled by user.")
                self._reset()
                return
            except BLEConnectionError as e:
                if self._cancelled(generation):
                    _LOGGER.info("Reconnect attempt was cancelled by user.")
                    self._reset()
                    return
                _LOGGER.warning("Reconnection failed: %s", e)
                continue

            _LOGGER.info("Reconnected successfully!")
            self._reset()
            return

    def _give_up(self) -> None:
        error = ReconnectExhausted(MAX_RECONNECT_ATTEMPTS)
        _LOGGER.error("%s", error)

        self.phase = ReconnectPhase.GIVING_UP
        self.attempt = 0
        self.last_error = error
        self.manager.release()

        for listener in list(self._give_up_listeners):
            listener(error)

    def _reset(self) -> None:
        self.phase = ReconnectPhase.IDLE
        self.attempt = 0
