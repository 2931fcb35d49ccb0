"""Byte-stream interface the protocol engine talks to.

Anything that can write bytes, wait for incoming data with a bound and
read what arrived can carry the protocol: a serial port, a socket bridge
to an RS-485 gateway, or a simulated drive in tests.
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol


class PollResult(Enum):
    """Outcome of waiting for incoming data."""

    READY = "ready"
    TIMEOUT = "timeout"
    INTERRUPTED = "interrupted"


class Transport(Protocol):
    def write(self, data: bytes) -> int:
        """Write ``data`` and return the number of bytes accepted."""
        ...

    def poll_readable(self, timeout_ms: int) -> PollResult:
        """Wait up to ``timeout_ms`` for at least one byte to become readable."""
        ...

    def read(self, max_len: int) -> bytes:
        """Return up to ``max_len`` bytes that are already available."""
        ...
