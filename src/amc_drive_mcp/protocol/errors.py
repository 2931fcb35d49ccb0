"""Exceptions raised by the AMC protocol engine.

Every exchange stops at the first failure and raises one of these. None of
them invalidates the session: the caller may issue the next command
straight away and owns any retry policy.
"""

from __future__ import annotations


class AMCError(Exception):
    """Base class for all protocol failures."""


class InvalidAccessTypeError(AMCError):
    """The command access type is not read, write or read-write."""

    def __init__(self, access_type: int) -> None:
        super().__init__(f"Invalid access type {access_type}")
        self.access_type = access_type


class WriteShortfallError(AMCError):
    """The transport accepted fewer bytes than the full frame."""

    def __init__(self, expected: int, written: int) -> None:
        super().__init__(f"Short write: {written} of {expected} bytes sent")
        self.expected = expected
        self.written = written


class ReadTimeoutError(AMCError):
    """No data arrived within the session timeout."""

    def __init__(self, stage: str, timeout_ms: int) -> None:
        super().__init__(f"Timed out reading {stage} after {timeout_ms} ms")
        self.stage = stage
        self.timeout_ms = timeout_ms


class ChecksumError(AMCError):
    """A received checksum does not match the recomputed one."""

    region = "frame"

    def __init__(self, expected: int, received: int) -> None:
        super().__init__(
            f"{self.region.capitalize()} checksum failed "
            f"(expected 0x{expected:04X}, got 0x{received:04X})"
        )
        self.expected = expected
        self.received = received


class HeaderChecksumError(ChecksumError):
    region = "header"


class PayloadChecksumError(ChecksumError):
    region = "payload"


class PayloadOverflowError(AMCError):
    """The response payload does not fit the caller's buffer."""

    def __init__(self, capacity: int, required: int) -> None:
        super().__init__(
            f"Payload received exceeds max size ({required} > {capacity} bytes)"
        )
        self.capacity = capacity
        self.required = required


class ShortResponseError(AMCError):
    """The response payload is shorter than the value being read."""

    def __init__(self, expected: int, received: int) -> None:
        super().__init__(f"Short response: {received} of {expected} bytes received")
        self.expected = expected
        self.received = received


class ResponseStatusError(AMCError):
    """The drive answered with a status other than 'complete'."""

    message = "Unexpected response status"

    def __init__(self, status1: int, status2: int = 0) -> None:
        super().__init__(f"{self.message} (status1={status1}, status2={status2})")
        self.status1 = status1
        self.status2 = status2


class ResponseIncompleteError(ResponseStatusError):
    message = "Command not completed"


class InvalidCommandError(ResponseStatusError):
    message = "Invalid command"


class NoAccessError(ResponseStatusError):
    message = "No access"


class FrameError(ResponseStatusError):
    message = "Frame error"


class UnknownStatusError(ResponseStatusError):
    message = "Unknown response status"
