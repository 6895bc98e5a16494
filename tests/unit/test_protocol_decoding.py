"""Test frame decoding and receiver-side assembly."""

import pytest

from openblink.exceptions import ProtocolError
from openblink.models.frames import DataFrame, ProgramFrame, ReloadFrame, ResetFrame
from openblink.protocol import (
    ProgramAssembler,
    build_data_command,
    build_program_command,
    build_reload_command,
    build_reset_command,
    crc16,
    parse_frame,
    parse_mtu_advertisement,
)


class TestParseFrame:
    """Test decoding of each frame type."""

    def test_parse_reset(self):
        assert parse_frame(build_reset_command()) == ResetFrame()

    def test_parse_reload(self):
        assert parse_frame(build_reload_command()) == ReloadFrame()

    def test_parse_data(self):
        frame = parse_frame(build_data_command(506, b'\x01\x02'))
        assert frame == DataFrame(offset=506, length=2, payload=b'\x01\x02')
        assert frame.end == 508

    def test_parse_program(self):
        frame = parse_frame(build_program_command(1000, 0x1234, 3))
        assert frame == ProgramFrame(length=1000, crc=0x1234, slot=3, reserved=0)

    def test_parse_rejects_wrong_version(self):
        with pytest.raises(ProtocolError, match="Unsupported protocol version"):
            parse_frame(b'\x02R')

    def test_parse_rejects_unknown_command(self):
        with pytest.raises(ProtocolError, match="Unknown command"):
            parse_frame(b'\x01X')

    def test_parse_rejects_short_frame(self):
        with pytest.raises(ProtocolError, match="too short"):
            parse_frame(b'\x01')

    def test_parse_rejects_data_length_mismatch(self):
        with pytest.raises(ProtocolError, match="length mismatch"):
            parse_frame(b'\x01D\x00\x00\x05\x00ab')

    def test_parse_rejects_truncated_program(self):
        with pytest.raises(ProtocolError, match="PROGRAM frame must be 8 bytes"):
            parse_frame(b'\x01P\x00\x00')


class TestParseMtuAdvertisement:

    def test_little_endian(self):
        assert parse_mtu_advertisement(b'\x17\x00') == 23
        assert parse_mtu_advertisement(b'\x00\x02') == 512

    def test_too_short(self):
        with pytest.raises(ProtocolError, match="too short"):
            parse_mtu_advertisement(b'\x17')


class TestProgramAssembler:
    """Test device-side staging of a transfer."""

    def test_assembles_contiguous_chunks(self):
        program = bytes(range(30))
        assembler = ProgramAssembler()

        assert not assembler.add_frame(build_data_command(0, program[:14]))
        assert not assembler.add_frame(build_data_command(14, program[14:28]))
        assert not assembler.add_frame(build_data_command(28, program[28:]))
        assert assembler.add_frame(build_program_command(30, crc16(program), 1))

        assert assembler.is_complete
        assert assembler.get_program() == program
        assert assembler.slot == 1
        assert assembler.frames_received == 3

    def test_rejects_gap(self):
        assembler = ProgramAssembler()
        assembler.add_frame(build_data_command(0, b'abcd'))

        with pytest.raises(ProtocolError, match="expected offset 4, got 5"):
            assembler.add_frame(build_data_command(5, b'e'))

    def test_rejects_overlap(self):
        assembler = ProgramAssembler()
        assembler.add_frame(build_data_command(0, b'abcd'))

        with pytest.raises(ProtocolError, match="Out-of-order"):
            assembler.add_frame(build_data_command(2, b'cd'))

    def test_rejects_crc_mismatch(self):
        assembler = ProgramAssembler()
        assembler.add_frame(build_data_command(0, b'abcd'))

        with pytest.raises(ProtocolError, match="CRC mismatch"):
            assembler.add_frame(build_program_command(4, crc16(b'abce'), 2))
        assert not assembler.is_complete

    def test_rejects_length_mismatch(self):
        assembler = ProgramAssembler()
        assembler.add_frame(build_data_command(0, b'abcd'))

        with pytest.raises(ProtocolError, match="Length mismatch"):
            assembler.add_frame(build_program_command(5, crc16(b'abcd'), 2))

    def test_reload_and_reset_do_not_touch_buffer(self):
        assembler = ProgramAssembler()
        assembler.add_frame(build_data_command(0, b'ab'))

        assert not assembler.add_frame(build_reload_command())
        assert not assembler.add_frame(build_reset_command())
        assert bytes(assembler.buffer) == b'ab'

    def test_get_program_before_complete(self):
        with pytest.raises(ProtocolError, match="Assembly incomplete"):
            ProgramAssembler().get_program()
