"""Command and response framing for the AMC serial protocol.

Header layout (8 bytes, shared by commands and responses)::

    +-----+---------+---------+---------+---------+-------------+----------+
    | SOF | Address | Control | Index   | Offset  | Payload len | Checksum |
    |     |         |         | Status1 | Status2 | (words)     | (BE)     |
    | 1 B |   1 B   |   1 B   |   1 B   |   1 B   |     1 B     |   2 B    |
    +-----+---------+---------+---------+---------+-------------+----------+

- SOF: always 0xA5
- Address: 0x00 broadcast, 0x01-0x3F drives, 0xFF drive-to-master
- Control: access type (bits 0-1), sequence number (bits 2-5), reserved (6-7)
- Checksum: CRC-16 over the first six header bytes, big-endian

When a payload is present it follows the header, ``payload_len * 2`` bytes
sent exactly as given, and is trailed by its own big-endian CRC-16 computed
with a separate accumulator.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, replace
from typing import Union

from ..utils.crc import crc16
from .commands import AccessType
from .errors import HeaderChecksumError

SOF_BYTE = 0xA5
HEADER_FORMAT = ">BBBBBBH"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)
CHECKSUM_SIZE = 2
CHECKED_HEADER_SIZE = HEADER_SIZE - CHECKSUM_SIZE
MAX_PAYLOAD_WORDS = 0xFF

ACCESS_TYPE_MASK = 0x03
SEQUENCE_SHIFT = 2
SEQUENCE_MASK = 0x0F
RESERVED_SHIFT = 6
RESERVED_MASK = 0x03


@dataclass(frozen=True)
class ControlByte:
    """The packed control byte of a header."""

    access_type: int = AccessType.UNUSED
    sequence: int = 0
    reserved: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.access_type <= ACCESS_TYPE_MASK:
            raise ValueError(f"Access type must be 0-3, got {self.access_type}")
        if not 0 <= self.sequence <= SEQUENCE_MASK:
            raise ValueError(f"Sequence must be 0-15, got {self.sequence}")
        if not 0 <= self.reserved <= RESERVED_MASK:
            raise ValueError(f"Reserved bits must be 0-3, got {self.reserved}")

    @property
    def value(self) -> int:
        return (
            (self.access_type & ACCESS_TYPE_MASK)
            | ((self.sequence & SEQUENCE_MASK) << SEQUENCE_SHIFT)
            | ((self.reserved & RESERVED_MASK) << RESERVED_SHIFT)
        )

    @property
    def carries_data(self) -> bool:
        """True when the sender of this header also sends a payload to the master."""
        return bool(self.access_type & AccessType.WRITE)

    @classmethod
    def from_byte(cls, value: int) -> ControlByte:
        return cls(
            access_type=value & ACCESS_TYPE_MASK,
            sequence=(value >> SEQUENCE_SHIFT) & SEQUENCE_MASK,
            reserved=(value >> RESERVED_SHIFT) & RESERVED_MASK,
        )


@dataclass(frozen=True)
class CommandHeader:
    """Header of a master-to-drive command packet."""

    address: int
    control: ControlByte
    index: int
    offset: int
    payload_words: int
    checksum: int = 0
    sof: int = SOF_BYTE

    def to_bytes(self) -> bytes:
        return struct.pack(
            HEADER_FORMAT,
            self.sof, self.address, self.control.value,
            self.index, self.offset, self.payload_words, self.checksum,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> CommandHeader:
        sof, address, control, index, offset, words, checksum = struct.unpack(
            HEADER_FORMAT, bytes(data[:HEADER_SIZE])
        )
        return cls(
            address=address, control=ControlByte.from_byte(control),
            index=index, offset=offset, payload_words=words,
            checksum=checksum, sof=sof,
        )


@dataclass(frozen=True)
class ResponseHeader:
    """Header of a drive-to-master response packet."""

    address: int
    control: ControlByte
    status1: int
    status2: int
    payload_words: int
    checksum: int = 0
    sof: int = SOF_BYTE

    def to_bytes(self) -> bytes:
        return struct.pack(
            HEADER_FORMAT,
            self.sof, self.address, self.control.value,
            self.status1, self.status2, self.payload_words, self.checksum,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> ResponseHeader:
        sof, address, control, status1, status2, words, checksum = struct.unpack(
            HEADER_FORMAT, bytes(data[:HEADER_SIZE])
        )
        return cls(
            address=address, control=ControlByte.from_byte(control),
            status1=status1, status2=status2, payload_words=words,
            checksum=checksum, sof=sof,
        )


Header = Union[CommandHeader, ResponseHeader]


def header_checksum(header_bytes: bytes, table: tuple[int, ...]) -> int:
    """CRC of a serialized header, excluding its trailing checksum field."""
    return crc16(header_bytes[:CHECKED_HEADER_SIZE], table)


def seal_header(header: Header, table: tuple[int, ...]) -> Header:
    """Return a copy of ``header`` with its checksum field filled in."""
    unsealed = replace(header, checksum=0)
    return replace(unsealed, checksum=header_checksum(unsealed.to_bytes(), table))


def encode_frame(header: Header, payload: bytes, table: tuple[int, ...]) -> bytes:
    """Serialize a header plus optional payload into wire bytes.

    Args:
        header: Command or response header; its checksum is recomputed.
        payload: Payload bytes, sent unconverted. May be empty.
        table: CRC lookup table of the session.

    Returns:
        Header, then (if ``payload`` is non-empty) payload and payload CRC.
    """
    frame = seal_header(header, table).to_bytes()
    if payload:
        payload_crc = crc16(payload, table)
        frame += bytes(payload) + payload_crc.to_bytes(CHECKSUM_SIZE, "big")
    return frame


def decode_response_header(data: bytes, table: tuple[int, ...]) -> ResponseHeader:
    """Parse an 8-byte response header and verify its checksum.

    Raises:
        ValueError: If fewer than ``HEADER_SIZE`` bytes are given.
        HeaderChecksumError: If the checksum does not match.
    """
    if len(data) < HEADER_SIZE:
        raise ValueError(f"Response header must be {HEADER_SIZE} bytes, got {len(data)}")
    header = ResponseHeader.from_bytes(data)
    expected = header_checksum(bytes(data[:HEADER_SIZE]), table)
    if expected != header.checksum:
        raise HeaderChecksumError(expected, header.checksum)
    return header
