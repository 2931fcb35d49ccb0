"""RS-485/RS-422 serial connection to an AMC drive.

The port is opened raw, 8N1, without hardware or software flow control
(RS-485 does not use it). Waiting for data uses ``select`` on the port's
file descriptor, or polls the input queue where there is none.
"""

from __future__ import annotations

import logging
import select
import time

import serial

from .base import PollResult

logger = logging.getLogger(__name__)

DEFAULT_PORT = "/dev/ttyUSB0"
DEFAULT_BAUDRATE = 115200
POLL_INTERVAL_S = 0.001

SUPPORTED_BAUDRATES = (
    50, 75, 110, 134, 150, 200, 300, 600, 1200, 1800,
    2400, 4800, 9600, 19200, 38400, 57600, 115200, 230400,
)


class SerialConnection:
    """Manages the serial port shared with the drive.

    Usage::

        conn = SerialConnection("/dev/ttyUSB0", 115200)
        conn.open()
        conn.write(frame_bytes)
        if conn.poll_readable(1000) is PollResult.READY:
            data = conn.read(8)
        conn.close()
    """

    def __init__(
        self,
        port: str = DEFAULT_PORT,
        baudrate: int = DEFAULT_BAUDRATE,
    ) -> None:
        if baudrate not in SUPPORTED_BAUDRATES:
            raise ValueError(
                f"Unsupported baud rate {baudrate}. Valid: {list(SUPPORTED_BAUDRATES)}"
            )
        self._port = port
        self._baudrate = baudrate
        self._serial: serial.Serial | None = None

    @property
    def connected(self) -> bool:
        return self._serial is not None and self._serial.is_open

    @property
    def port(self) -> str:
        return self._port

    @property
    def baudrate(self) -> int:
        return self._baudrate

    def open(self) -> None:
        """Open and configure the serial port, discarding stale data.

        Raises:
            ConnectionError: If the port cannot be opened.
        """
        try:
            self._serial = serial.Serial(
                port=self._port,
                baudrate=self._baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                rtscts=False,
                xonxoff=False,
                timeout=0,
            )
        except serial.SerialException as e:
            raise ConnectionError(
                f"Could not open serial device {self._port} at {self._baudrate} baud: {e}"
            ) from e

        self.flush()
        logger.info("Opened %s at %d baud", self._port, self._baudrate)

    def close(self) -> None:
        """Close the serial port."""
        if self._serial is None:
            return
        try:
            self._serial.close()
        except serial.SerialException as e:
            logger.warning("Error closing %s: %s", self._port, e)
        finally:
            self._serial = None
            logger.info("Closed %s", self._port)

    def flush(self) -> None:
        """Drop anything pending in the input and output queues."""
        port = self._require_open()
        port.reset_input_buffer()
        port.reset_output_buffer()

    def write(self, data: bytes) -> int:
        """Write a whole frame and return the number of bytes written."""
        port = self._require_open()
        try:
            written = port.write(data)
            port.flush()
        except serial.SerialTimeoutException:
            logger.debug("Write to %s timed out", self._port)
            return 0
        except serial.SerialException as e:
            raise ConnectionError(f"Write to {self._port} failed: {e}") from e
        return written or 0

    def poll_readable(self, timeout_ms: int) -> PollResult:
        """Wait until at least one byte is queued or ``timeout_ms`` elapses.

        Ports backed by a file descriptor are waited on with ``select``;
        others fall back to polling the input queue.
        """
        port = self._require_open()
        try:
            if port.in_waiting:
                return PollResult.READY
            fd = _fileno(port)
            if fd is None:
                return self._poll_queue(port, timeout_ms)
            readable, _, _ = select.select([fd], [], [], timeout_ms / 1000.0)
        except InterruptedError:
            return PollResult.INTERRUPTED
        except (serial.SerialException, OSError, ValueError) as e:
            raise ConnectionError(f"Polling {self._port} failed: {e}") from e
        return PollResult.READY if readable else PollResult.TIMEOUT

    @staticmethod
    def _poll_queue(port: serial.Serial, timeout_ms: int) -> PollResult:
        deadline = time.monotonic() + timeout_ms / 1000.0
        while not port.in_waiting:
            if time.monotonic() >= deadline:
                return PollResult.TIMEOUT
            time.sleep(POLL_INTERVAL_S)
        return PollResult.READY

    def read(self, max_len: int) -> bytes:
        """Read at most ``max_len`` of the bytes already queued."""
        port = self._require_open()
        try:
            available = port.in_waiting
            return port.read(min(max_len, available)) if available else b""
        except serial.SerialException as e:
            raise ConnectionError(f"Read from {self._port} failed: {e}") from e

    def _require_open(self) -> serial.Serial:
        if self._serial is None or not self._serial.is_open:
            raise ConnectionError(f"Serial device {self._port} is not open")
        return self._serial


def _fileno(port: serial.Serial) -> int | None:
    """File descriptor of ``port``, or None where the platform has none."""
    try:
        return port.fileno()
    except (AttributeError, OSError, ValueError):
        return None
