"""Test chunked program delivery."""

from __future__ import annotations

import math

import pytest
from conftest import FakeClient, make_session

from openblink.exceptions import TransferError
from openblink.models.frames import DataFrame, ProgramFrame, ReloadFrame
from openblink.protocol import CommandCode, ProgramAssembler, crc16, parse_frame
from openblink.transfer import TransferEngine


def _data_frames(client: FakeClient) -> list[DataFrame]:
    frames = [parse_frame(data) for data in client.frames]
    return [frame for frame in frames if isinstance(frame, DataFrame)]


@pytest.mark.asyncio
async def test_send_1000_bytes_at_mtu_512() -> None:
    """MTU 512 gives 506-byte payloads: two DATA frames, then PROGRAM and RELOAD."""
    client = FakeClient()
    session = make_session(client, mtu=512)
    program = bytes(i % 251 for i in range(1000))

    result = await TransferEngine().send(session, program, slot=2)

    frames = [parse_frame(data) for data in client.frames]
    assert [f.offset for f in frames[:2]] == [0, 506]
    assert [f.length for f in frames[:2]] == [506, 494]
    assert frames[2] == ProgramFrame(length=1000, crc=crc16(program), slot=2)
    assert frames[3] == ReloadFrame()
    assert len(frames) == 4

    assert result.length == 1000
    assert result.crc == crc16(program)
    assert result.data_frames == 2
    assert result.mtu == 512
    assert result.reloaded is True


@pytest.mark.asyncio
@pytest.mark.parametrize("mtu", [7, 20, 23, 185, 512])
@pytest.mark.parametrize("length", [0, 1, 13, 14, 15, 100, 1000, 4099])
async def test_data_frames_partition_buffer(mtu: int, length: int) -> None:
    """Frame count is ceil(L/P) and offsets tile [0, L) with no gaps."""
    client = FakeClient()
    session = make_session(client, mtu=mtu)
    payload_size = mtu - 6
    program = bytes(i % 256 for i in range(length))

    await TransferEngine().send(session, program)

    data_frames = _data_frames(client)
    assert len(data_frames) == math.ceil(length / payload_size)
    assert sum(frame.length for frame in data_frames) == length

    expected_offset = 0
    for frame in data_frames:
        assert frame.offset == expected_offset
        assert 1 <= frame.length <= payload_size
        expected_offset = frame.end
    assert expected_offset == length


@pytest.mark.asyncio
async def test_device_assembler_accepts_transfer() -> None:
    """Frames written by the engine are accepted by the device-side assembler."""
    client = FakeClient()
    program = b'RITE0300' + bytes(range(256)) * 3

    await TransferEngine().send(make_session(client, mtu=20), program, slot=1)

    assembler = ProgramAssembler()
    completed = [assembler.add_frame(data) for data in client.frames]
    assert completed.count(True) == 1
    assert assembler.get_program() == program
    assert assembler.slot == 1


@pytest.mark.asyncio
async def test_write_failure_aborts_at_frame_offset() -> None:
    """A failure on the 2nd of 5 DATA frames reports its offset; no PROGRAM is sent."""
    client = FakeClient(fail_on_write=1)
    session = make_session(client, mtu=20)  # 14-byte payloads
    program = bytes(70)  # 5 DATA frames

    with pytest.raises(TransferError) as exc_info:
        await TransferEngine().send(session, program)

    assert exc_info.value.offset == 14
    assert exc_info.value.command == CommandCode.DATA
    assert client.write_attempts == 2
    assert all(isinstance(parse_frame(data), DataFrame) for data in client.frames)


@pytest.mark.asyncio
async def test_program_write_failure_reports_end_offset() -> None:
    client = FakeClient(fail_on_write=2)
    session = make_session(client, mtu=20)

    with pytest.raises(TransferError) as exc_info:
        await TransferEngine().send(session, bytes(28))

    assert exc_info.value.offset == 28
    assert exc_info.value.command == CommandCode.PROGRAM
    # No RELOAD after a failed PROGRAM
    assert client.write_attempts == 3


@pytest.mark.asyncio
async def test_reload_failure_is_reported_in_result() -> None:
    """The program is staged even if RELOAD fails."""
    client = FakeClient(fail_on_write=2)
    session = make_session(client, mtu=20)

    result = await TransferEngine().send(session, bytes(14))

    assert result.reloaded is False
    assert isinstance(parse_frame(client.frames[-1]), ProgramFrame)


@pytest.mark.asyncio
async def test_prefers_write_without_response() -> None:
    client = FakeClient()
    await TransferEngine().send(make_session(client, write_without_response=True), b'abc')

    assert [response for _, response in client.writes] == [False, False, False]


@pytest.mark.asyncio
async def test_falls_back_to_acknowledged_write() -> None:
    client = FakeClient()
    await TransferEngine().send(make_session(client, write_without_response=False), b'abc')

    assert [response for _, response in client.writes] == [True, True, True]


@pytest.mark.asyncio
async def test_checksum_computed_once_over_whole_buffer(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[bytes] = []

    def counting_crc16(data: bytes) -> int:
        seen.append(bytes(data))
        return crc16(data)

    monkeypatch.setattr("openblink.transfer.crc16", counting_crc16)
    program = bytes(range(100))

    await TransferEngine().send(make_session(mtu=20), program)

    assert seen == [program]


@pytest.mark.asyncio
async def test_send_reset_always_acknowledged() -> None:
    client = FakeClient()
    await TransferEngine().send_reset(make_session(client, write_without_response=True))

    assert client.writes == [(b'\x01R', True)]


@pytest.mark.asyncio
async def test_send_reset_failure_raises() -> None:
    client = FakeClient(fail_on_write=0)

    with pytest.raises(TransferError, match="RESET write failed"):
        await TransferEngine().send_reset(make_session(client))


@pytest.mark.asyncio
async def test_send_reload_uses_preferred_write() -> None:
    client = FakeClient()
    assert await TransferEngine().send_reload(make_session(client)) is True
    assert client.writes == [(b'\x01L', False)]


@pytest.mark.asyncio
async def test_rejects_oversized_program() -> None:
    with pytest.raises(ValueError, match="exceeds maximum"):
        await TransferEngine().send(make_session(), bytes(0x10000))


@pytest.mark.asyncio
async def test_rejects_invalid_slot() -> None:
    with pytest.raises(ValueError, match="does not fit in uint8"):
        await TransferEngine().send(make_session(), b'a', slot=256)


@pytest.mark.asyncio
async def test_rejects_mtu_without_payload_room() -> None:
    client = FakeClient()
    with pytest.raises(ValueError, match="no room"):
        await TransferEngine().send(make_session(client, mtu=6), b'a')
    assert client.writes == []
