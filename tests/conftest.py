"""Shared fixtures: a scripted byte stream and a simulated AMC drive."""

from __future__ import annotations

from collections import deque

import pytest

from amc_drive_mcp.drive import AMCDrive
from amc_drive_mcp.protocol.commands import ADDRESS_MASTER, AccessType, ResponseStatus
from amc_drive_mcp.protocol.framing import (
    CHECKSUM_SIZE,
    HEADER_SIZE,
    CommandHeader,
    ControlByte,
    ResponseHeader,
    encode_frame,
    header_checksum,
)
from amc_drive_mcp.protocol.session import DriveSession
from amc_drive_mcp.transport.base import PollResult
from amc_drive_mcp.utils.crc import crc16, make_table

TABLE = make_table()


def make_response(
    payload: bytes = b"",
    status1: int = ResponseStatus.COMPLETE,
    status2: int = 0,
    access_type: int | None = None,
    sequence: int = 1,
    payload_words: int | None = None,
) -> bytes:
    """Build a well-formed response frame as a drive would send it."""
    if access_type is None:
        access_type = AccessType.WRITE if payload else AccessType.READ
    header = ResponseHeader(
        address=ADDRESS_MASTER,
        control=ControlByte(access_type=access_type, sequence=sequence),
        status1=status1,
        status2=status2,
        payload_words=len(payload) // 2 if payload_words is None else payload_words,
    )
    frame = encode_frame(header, payload, TABLE)
    if header.control.carries_data and not payload:
        # the drive always trails a data-bearing reply with a payload CRC
        frame += crc16(b"", TABLE).to_bytes(CHECKSUM_SIZE, "big")
    return frame


class ScriptedTransport:
    """Transport replaying queued chunks; records everything written."""

    def __init__(self, chunks=(), polls=(), write_limit: int | None = None) -> None:
        self.rx: deque[bytes] = deque(bytes(c) for c in chunks)
        self.polls: deque[PollResult] = deque(polls)
        self.write_limit = write_limit
        self.written: list[bytes] = []
        self.poll_count = 0

    def feed(self, *chunks: bytes) -> None:
        self.rx.extend(bytes(c) for c in chunks)

    def write(self, data: bytes) -> int:
        self.written.append(bytes(data))
        if self.write_limit is not None:
            return min(len(data), self.write_limit)
        return len(data)

    def poll_readable(self, timeout_ms: int) -> PollResult:
        self.poll_count += 1
        if self.polls:
            return self.polls.popleft()
        return PollResult.READY if self.rx else PollResult.TIMEOUT

    def read(self, max_len: int) -> bytes:
        chunk = self.rx.popleft()
        if len(chunk) > max_len:
            self.rx.appendleft(chunk[max_len:])
            chunk = chunk[:max_len]
        return chunk

    @property
    def pending(self) -> int:
        return sum(len(c) for c in self.rx)


class SimulatedDrive(ScriptedTransport):
    """Cooperative drive: answers every command from a register map.

    Reads return register contents padded to the requested length, writes
    store the payload, read-write commands store and echo the payload.
    ``status1`` forces the next responses' status, ``chunk_size`` splits
    responses into small reads.
    """

    def __init__(self, registers=None, chunk_size: int | None = None) -> None:
        super().__init__()
        self.registers: dict[tuple[int, int], bytes] = dict(registers or {})
        self.chunk_size = chunk_size
        self.status1 = ResponseStatus.COMPLETE
        self.commands: list[tuple[CommandHeader, bytes]] = []

    def write(self, data: bytes) -> int:
        written = super().write(data)
        header = CommandHeader.from_bytes(data)
        assert header.checksum == header_checksum(data, TABLE)
        payload = b""
        if len(data) > HEADER_SIZE:
            payload = data[HEADER_SIZE:-CHECKSUM_SIZE]
            assert crc16(payload, TABLE) == int.from_bytes(data[-CHECKSUM_SIZE:], "big")
        self.commands.append((header, payload))
        self._respond(header, payload)
        return written

    def _respond(self, header: CommandHeader, payload: bytes) -> None:
        key = (header.index, header.offset)
        access = header.control.access_type
        if access == AccessType.READ:
            size = header.payload_words * 2
            reply = self.registers.get(key, b"")[:size].ljust(size, b"\x00")
        elif access == AccessType.READ_WRITE:
            self.registers[key] = payload
            reply = payload
        else:
            self.registers[key] = payload
            reply = b""

        frame = make_response(
            reply,
            status1=self.status1,
            access_type=AccessType.WRITE if access != AccessType.WRITE else AccessType.READ,
            sequence=header.control.sequence,
        )
        if self.chunk_size:
            for i in range(0, len(frame), self.chunk_size):
                self.feed(frame[i : i + self.chunk_size])
        else:
            self.feed(frame)


@pytest.fixture
def transport() -> ScriptedTransport:
    return ScriptedTransport()


@pytest.fixture
def session(transport) -> DriveSession:
    return DriveSession(transport, address=0x3F)


@pytest.fixture
def sim() -> SimulatedDrive:
    return SimulatedDrive()


@pytest.fixture
def drive(sim) -> AMCDrive:
    return AMCDrive(DriveSession(sim, address=0x3F))
