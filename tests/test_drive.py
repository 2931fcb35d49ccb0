"""Tests for the register facade against a simulated drive."""

import struct
from dataclasses import replace

import pytest

from amc_drive_mcp.drive import AMCDrive
from amc_drive_mcp.models.product_info import PRODUCT_INFO_SIZE, ProductInfo
from amc_drive_mcp.models.status import BridgeControl, BridgeStatus, ProtectionStatus
from amc_drive_mcp.protocol.commands import AccessType, ResponseStatus
from amc_drive_mcp.protocol.errors import (
    NoAccessError,
    PayloadOverflowError,
    ShortResponseError,
)
from amc_drive_mcp.protocol.session import DriveSession

from conftest import SimulatedDrive


def _u16(value):
    return struct.pack("=H", value)


def test_get_string(drive, sim):
    sim.registers[(0x0B, 0x00)] = b"DPRAHIE-030A800\x00"
    assert drive.get_string(0x0B, 0x00, 16) == b"DPRAHIE-030A800\x00"
    header, payload = sim.commands[-1]
    assert header.control.access_type == AccessType.READ
    assert header.payload_words == 8
    assert payload == b""


def test_get_uint16_and_uint32(drive, sim):
    sim.registers[(0x01, 0x00)] = _u16(0xBEEF)
    sim.registers[(0x45, 0x03)] = struct.pack("=I", 0x12345678)
    assert drive.get_uint16(0x01, 0x00) == 0xBEEF
    assert drive.get_uint32(0x45, 0x03) == 0x12345678


def test_write_uint16_is_unconverted(drive, sim):
    """Integer payloads go out in host byte order."""
    drive.write_uint16(0x01, 0x00, 0x0102)
    header, payload = sim.commands[-1]
    assert header.control.access_type == AccessType.WRITE
    assert header.payload_words == 1
    assert payload == struct.pack("=H", 0x0102)


def test_write_uint32(drive, sim):
    drive.write_uint32(0x45, 0x02, 0xCAFEF00D)
    assert sim.registers[(0x45, 0x02)] == struct.pack("=I", 0xCAFEF00D)


def test_read_write_round_trip(drive, sim):
    """A read-write exchange echoes the payload back unchanged."""
    payload = bytes(range(32))
    response = drive.session.transact(
        AccessType.READ_WRITE, 0x20, 0x01, payload=payload, response_len=len(payload)
    )
    assert response.payload == payload
    assert response.header.control.sequence == drive.session.sequence


def test_round_trip_with_fragmented_responses():
    sim = SimulatedDrive({(0x0B, 0x00): b"AMC\x00"}, chunk_size=3)
    drive = AMCDrive(DriveSession(sim, address=1))
    assert drive.get_string(0x0B, 0x00, 4) == b"AMC\x00"


def test_get_access_control(drive, sim):
    drive.get_access_control()
    header, payload = sim.commands[-1]
    assert (header.index, header.offset) == (0x07, 0x00)
    assert payload == _u16(0x000E)


def test_get_product_info(drive, sim):
    info = ProductInfo(control_board_name="DPR", product_part_number="DPRALTE-020B080")
    sim.registers[(0x8C, 0x00)] = info.to_bytes()
    assert drive.get_product_info() == info
    header, _ = sim.commands[-1]
    assert header.payload_words == PRODUCT_INFO_SIZE // 2


def test_get_drive_name(drive, sim):
    sim.registers[(0x0B, 0x00)] = b"Azimuth\x00garbage"
    assert drive.get_drive_name() == "Azimuth"
    assert sim.commands[-1][0].payload_words == 128


def test_command_params(drive, sim):
    drive.set_command_param(4, 1000)
    assert drive.get_command_param(4) == 1000
    assert sim.commands[-1][0].index == 0x45
    assert sim.commands[-1][0].offset == 4


def test_command_param_bounds(drive):
    with pytest.raises(ValueError):
        drive.get_command_param(16)
    with pytest.raises(ValueError):
        drive.set_command_param(-1, 0)


def test_enable_bridge_keeps_other_bits(drive, sim):
    sim.registers[(0x01, 0x00)] = _u16(BridgeControl.INHIBIT | BridgeControl.BRAKE | 0x8000)
    control = drive.enable_bridge(True)
    assert sim.registers[(0x01, 0x00)] == _u16(BridgeControl.BRAKE | 0x8000)
    assert int(control) == BridgeControl.BRAKE | 0x8000

    drive.enable_bridge(False)
    assert sim.registers[(0x01, 0x00)] == _u16(BridgeControl.INHIBIT | BridgeControl.BRAKE | 0x8000)


def test_quick_stop(drive, sim):
    sim.registers[(0x01, 0x00)] = _u16(0)
    drive.quick_stop(True)
    assert sim.registers[(0x01, 0x00)] == _u16(BridgeControl.QUICK_STOP)
    drive.quick_stop(False)
    assert sim.registers[(0x01, 0x00)] == _u16(0)


def test_reset_events_pulses_bit(drive, sim):
    sim.registers[(0x01, 0x00)] = _u16(BridgeControl.BRAKE)
    drive.reset_events()
    writes = [p for h, p in sim.commands if h.control.access_type == AccessType.WRITE]
    assert writes == [
        _u16(BridgeControl.BRAKE | BridgeControl.RESET_EVENTS),
        _u16(BridgeControl.BRAKE),
    ]


def test_get_drive_status(drive, sim):
    sim.registers[(0x02, 0x00)] = _u16(BridgeStatus.ENABLED)
    sim.registers[(0x02, 0x01)] = _u16(ProtectionStatus.OVERVOLTAGE)
    status = drive.get_drive_status()
    assert status.bridge_enabled
    assert status.faulted
    assert [h.offset for h, _ in sim.commands] == [0, 1, 2, 3, 4]


def test_drive_surfaces_status_errors(drive, sim):
    sim.status1 = ResponseStatus.NO_ACCESS
    with pytest.raises(NoAccessError):
        drive.write_uint16(0x01, 0x00, 1)


def test_get_string_overflow_is_reported():
    """A drive answering with more data than asked for is caught."""

    class Oversharing(SimulatedDrive):
        def _respond(self, header, payload):
            super()._respond(replace(header, payload_words=header.payload_words + 2), payload)

    drive = AMCDrive(DriveSession(Oversharing(), address=1))
    with pytest.raises(PayloadOverflowError):
        drive.get_uint16(0x01, 0x00)


class Truncating(SimulatedDrive):
    """Answers reads with one word less than asked for."""

    def _respond(self, header, payload):
        super()._respond(replace(header, payload_words=header.payload_words - 1), payload)


@pytest.mark.parametrize("read, width", [("get_uint16", 2), ("get_uint32", 4)])
def test_short_integer_reply_is_rejected(read, width):
    sim = Truncating({(0x01, 0x00): b"\xff" * 4})
    drive = AMCDrive(DriveSession(sim, address=1))
    with pytest.raises(ShortResponseError) as exc_info:
        getattr(drive, read)(0x01, 0x00)
    assert exc_info.value.expected == width
    assert exc_info.value.received == width - 2
    assert sim.pending == 0


def test_close_closes_transport(sim):
    closed = []
    sim.close = lambda: closed.append(True)
    AMCDrive(DriveSession(sim, address=1)).close()
    assert closed == [True]
