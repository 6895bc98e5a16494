"""Program transfer over the OpenBlink program characteristic."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .exceptions import TransferError
from .models.transfer import TransferResult
from .protocol import (
    DEFAULT_SLOT,
    CommandCode,
    build_data_command,
    build_program_command,
    build_reload_command,
    build_reset_command,
    crc16,
)
from .protocol.commands import MAX_FIELD_U16

if TYPE_CHECKING:
    from .models.session import Session

_LOGGER = logging.getLogger(__name__)


async def write_frame(session: Session, frame: bytes, acknowledged: bool | None = None) -> None:
    """Write one frame to the program characteristic.

    Args:
        session: Live session
        frame: Frame bytes
        acknowledged: Force an acknowledged (True) or unacknowledged (False)
            write. By default write-without-response is used whenever the
            characteristic supports it.
    """
    if acknowledged is None:
        acknowledged = not session.supports_write_without_response
    await session.client.write_gatt_char(
        session.program_characteristic,
        frame,
        response=acknowledged,
    )


class TransferEngine:
    """Chunks a program buffer into DATA frames and delivers it in order.

    Usage:
        engine = TransferEngine()
        result = await engine.send(session, bytecode, slot=2)
    """

    async def send(self, session: Session, buffer: bytes, slot: int = DEFAULT_SLOT) -> TransferResult:
        """Deliver a complete program to the device.

        Frames are written strictly one after another. The device assembles
        its staging buffer in order, so nothing is pipelined.

        Args:
            session: Live session (borrowed for this call only)
            buffer: Compiled bytecode
            slot: Destination slot on the device

        Returns:
            TransferResult describing the delivered program

        Raises:
            ValueError: If the buffer or slot do not fit the frame fields,
                or the session MTU leaves no room for payload
            TransferError: If any DATA or PROGRAM write fails
        """
        buffer = bytes(buffer)
        length = len(buffer)
        payload_size = session.payload_size

        if payload_size < 1:
            raise ValueError(f"MTU {session.mtu} leaves no room for DATA payload")
        if length > MAX_FIELD_U16:
            raise ValueError(f"Program of {length} bytes exceeds maximum {MAX_FIELD_U16}")
        if not 0 <= slot <= 0xFF:
            raise ValueError(f"Slot {slot} does not fit in uint8")

        crc = crc16(buffer)

        _LOGGER.info(
            "Sending bytecode: slot=%d, length=%dbytes, CRC16=%x, MTU=%d",
            slot,
            length,
            crc,
            session.mtu,
        )
        _LOGGER.debug("DATA_PAYLOAD_SIZE: %d Bytes", payload_size)

        data_frames = 0
        for offset in range(0, length, payload_size):
            chunk = buffer[offset:offset + payload_size]
            frame = build_data_command(offset, chunk)

            try:
                await write_frame(session, frame)
            except Exception as e:
                _LOGGER.warning("Send [D]ata Error: Offset=%d, Error: %s", offset, e)
                raise TransferError(
                    f"DATA write failed at offset {offset}: {e}",
                    offset=offset,
                    command=CommandCode.DATA,
                ) from e

            data_frames += 1
            _LOGGER.debug("Send [D]ata Ok: Offset=%d, Size=%d", offset, len(chunk))

        try:
            await write_frame(session, build_program_command(length, crc, slot))
        except Exception as e:
            _LOGGER.warning("Send [P]rogram Error: %s", e)
            raise TransferError(
                f"PROGRAM write failed: {e}",
                offset=length,
                command=CommandCode.PROGRAM,
            ) from e
        _LOGGER.debug("Send [P]rogram Complete")

        reloaded = await self.send_reload(session)

        return TransferResult(
            length=length,
            crc=crc,
            slot=slot,
            mtu=session.mtu,
            data_frames=data_frames,
            reloaded=reloaded,
        )

    async def send_reload(self, session: Session) -> bool:
        """Ask the device to activate its staged program.

        Returns:
            True if the RELOAD frame was written
        """
        try:
            await write_frame(session, build_reload_command())
        except Exception as e:
            _LOGGER.warning("Send re[L]oad Error: %s", e)
            return False

        _LOGGER.info("Send re[L]oad Complete")
        return True

    async def send_reset(self, session: Session) -> None:
        """Ask the device to reboot.

        RESET always uses an acknowledged write.

        Raises:
            TransferError: If the write fails
        """
        try:
            await write_frame(session, build_reset_command(), acknowledged=True)
        except Exception as e:
            raise TransferError(
                f"RESET write failed: {e}",
                offset=0,
                command=CommandCode.RESET,
            ) from e

        _LOGGER.info("Send [R]eset Complete")
