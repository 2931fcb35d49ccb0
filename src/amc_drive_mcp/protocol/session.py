"""Per-connection protocol state: sequence numbering, send and receive.

A session owns one transport and talks to one drive address. Exchanges are
strictly one at a time: :meth:`DriveSession.send_command` followed by
:meth:`DriveSession.read_response`. Nothing here locks; callers sharing a
session between threads must serialize exchanges themselves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from ..transport.base import PollResult, Transport
from ..utils.crc import CRC_POLY, crc16, make_table
from .commands import (
    ADDRESS_MASTER,
    STATUS_ERRORS,
    VALID_ACCESS_TYPES,
    AccessType,
    ResponseStatus,
)
from .errors import (
    InvalidAccessTypeError,
    PayloadChecksumError,
    PayloadOverflowError,
    ReadTimeoutError,
    UnknownStatusError,
    WriteShortfallError,
)
from .framing import (
    CHECKSUM_SIZE,
    HEADER_SIZE,
    MAX_PAYLOAD_WORDS,
    CommandHeader,
    ControlByte,
    ResponseHeader,
    decode_response_header,
    encode_frame,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 1000
SEQUENCE_MODULUS = 16

FrameObserver = Callable[[str, bytes], None]


def log_frame(direction: str, data: bytes) -> None:
    """Default diagnostics observer: hex dump at DEBUG level."""
    logger.debug("%s %s", direction, data.hex(" ") if data else "(empty)")


@dataclass
class Response:
    """A fully validated response."""

    header: ResponseHeader
    payload: bytes
    bytes_read: int

    def __repr__(self) -> str:
        return (
            f"Response(status1={self.header.status1}, "
            f"seq={self.header.control.sequence}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


class DriveSession:
    """Protocol state for one drive on one transport.

    Args:
        transport: Byte stream to the drive, exclusively owned by this session.
        address: Drive address (0x00 broadcast, 0x01-0x3F).
        timeout_ms: Bound on each wait for incoming data.
        diagnostics: Pass raw frames to ``observer`` when true.
        observer: Called as ``observer(direction, data)`` with direction
            ``"tx"`` or ``"rx"``. Defaults to :func:`log_frame`.
        polynomial: CRC polynomial used to build the checksum table.
    """

    def __init__(
        self,
        transport: Transport,
        address: int,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        diagnostics: bool = False,
        observer: FrameObserver | None = None,
        polynomial: int = CRC_POLY,
    ) -> None:
        if not 0 <= address <= ADDRESS_MASTER:
            raise ValueError(f"Address must be 0-255, got {address}")
        if timeout_ms < 0:
            raise ValueError(f"Timeout must not be negative, got {timeout_ms}")
        self.transport = transport
        self.address = address
        self.timeout_ms = timeout_ms
        self.diagnostics = diagnostics
        self.observer: FrameObserver = observer or log_frame
        self._table = make_table(polynomial)
        self._sequence = 0

    @property
    def crc_table(self) -> tuple[int, ...]:
        return self._table

    @property
    def sequence(self) -> int:
        """Sequence number of the most recently built command."""
        return self._sequence

    def _next_sequence(self) -> int:
        self._sequence = (self._sequence + 1) % SEQUENCE_MODULUS
        return self._sequence

    def _observe(self, direction: str, data: bytes) -> None:
        if self.diagnostics:
            self.observer(direction, data)

    # --- send path ----------------------------------------------------------
    def build_command(
        self,
        access_type: int,
        index: int,
        offset: int,
        payload: bytes = b"",
        response_len: int = 0,
    ) -> bytes:
        """Build the wire bytes of a command, advancing the sequence number.

        The sequence number advances even when the command is rejected.

        Args:
            access_type: One of :data:`VALID_ACCESS_TYPES`.
            index: Register group index (0-255).
            offset: Register offset within the group (0-255).
            payload: Data to send with write and read-write commands.
            response_len: Expected response size in bytes for read commands.

        Raises:
            InvalidAccessTypeError: For unused or out-of-range access types.
            ValueError: For out-of-range fields or odd-length payloads.
        """
        sequence = self._next_sequence()

        if access_type not in VALID_ACCESS_TYPES:
            raise InvalidAccessTypeError(access_type)
        if not 0 <= index <= 0xFF or not 0 <= offset <= 0xFF:
            raise ValueError(f"Index and offset must be 0-255, got ({index}, {offset})")
        if len(payload) % 2:
            raise ValueError(f"Payload must be whole 16-bit words, got {len(payload)} bytes")

        if access_type == AccessType.READ:
            payload_words = response_len // 2
        else:
            payload_words = len(payload) // 2
        if not 0 <= payload_words <= MAX_PAYLOAD_WORDS:
            raise ValueError(
                f"Payload length must be 0-{MAX_PAYLOAD_WORDS} words, got {payload_words}"
            )

        header = CommandHeader(
            address=self.address,
            control=ControlByte(access_type=access_type, sequence=sequence),
            index=index,
            offset=offset,
            payload_words=payload_words,
        )
        return encode_frame(header, payload, self._table)

    def send_command(
        self,
        access_type: int,
        index: int,
        offset: int,
        payload: bytes = b"",
        response_len: int = 0,
    ) -> int:
        """Build a command and write it to the transport in one call.

        Returns:
            Number of bytes written.

        Raises:
            WriteShortfallError: If the transport accepted fewer bytes than
                the full frame.
        """
        frame = self.build_command(access_type, index, offset, payload, response_len)
        logger.debug(
            "write: seq=%d type=%d index=0x%02X offset=0x%02X",
            self._sequence, access_type, index, offset,
        )
        self._observe("tx", frame)

        written = self.transport.write(frame)
        if written != len(frame):
            raise WriteShortfallError(len(frame), written)
        return written

    # --- receive path -------------------------------------------------------
    def _wait_readable(self, stage: str) -> None:
        while True:
            result = self.transport.poll_readable(self.timeout_ms)
            if result is PollResult.READY:
                return
            if result is PollResult.TIMEOUT:
                raise ReadTimeoutError(stage, self.timeout_ms)
            # interrupted: wait again with a fresh timeout

    def _read_exact(self, size: int, stage: str, capacity: int | None = None) -> bytes:
        """Read exactly ``size`` bytes, waiting up to the timeout for each chunk.

        When ``capacity`` is given, a chunk that would take the running total
        past it raises :class:`PayloadOverflowError` before being buffered.
        """
        buffer = bytearray()
        while len(buffer) < size:
            self._wait_readable(stage)
            chunk = self.transport.read(size - len(buffer))
            if capacity is not None and len(buffer) + len(chunk) > capacity:
                logger.debug("Payload received exceeds max size %d", capacity)
                raise PayloadOverflowError(capacity, size)
            buffer += chunk
        return bytes(buffer)

    def read_response(self, payload_max_size: int = 0) -> Response:
        """Read and validate one response from the drive.

        Args:
            payload_max_size: Largest payload in bytes the caller accepts.

        Returns:
            The validated :class:`Response`; ``bytes_read`` counts the header
            and payload but not the payload checksum.

        Raises:
            ReadTimeoutError: If any wait for data exceeds the timeout.
            HeaderChecksumError: If the header checksum does not match.
            ResponseStatusError: If the drive did not complete the command.
            PayloadOverflowError: If the payload exceeds ``payload_max_size``.
            PayloadChecksumError: If the payload checksum does not match.
        """
        raw_header = self._read_exact(HEADER_SIZE, "response header")
        self._observe("rx", raw_header)
        header = decode_response_header(raw_header, self._table)
        logger.debug("read: seq=%d status=%d/%d", header.control.sequence,
                     header.status1, header.status2)

        if header.status1 != ResponseStatus.COMPLETE:
            error_cls = STATUS_ERRORS.get(header.status1, UnknownStatusError)
            raise error_cls(header.status1, header.status2)

        if not header.control.carries_data:
            return Response(header=header, payload=b"", bytes_read=HEADER_SIZE)

        payload = self._read_exact(
            header.payload_words * 2, "payload", capacity=payload_max_size
        )
        self._observe("rx", payload)
        trailer = self._read_exact(CHECKSUM_SIZE, "payload checksum")
        self._observe("rx", trailer)

        expected = crc16(payload, self._table)
        received = int.from_bytes(trailer, "big")
        if expected != received:
            raise PayloadChecksumError(expected, received)

        return Response(
            header=header, payload=payload, bytes_read=HEADER_SIZE + len(payload)
        )

    def transact(
        self,
        access_type: int,
        index: int,
        offset: int,
        payload: bytes = b"",
        response_len: int = 0,
    ) -> Response:
        """Send one command and read its response."""
        self.send_command(access_type, index, offset, payload, response_len)
        return self.read_response(response_len)
