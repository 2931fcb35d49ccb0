"""Register-level access to an AMC drive.

:class:`AMCDrive` wraps a :class:`~amc_drive_mcp.protocol.session.DriveSession`
and exposes typed reads and writes addressed by (index, offset), plus a few
helpers for well-known registers.

Integer registers are packed in host byte order, the drive's payload words
are never byte-swapped.
"""

from __future__ import annotations

import logging
import struct

from .models.product_info import PRODUCT_INFO_SIZE, ProductInfo
from .models.status import (
    BridgeControl,
    BridgeStatus,
    DriveStatus,
    DriveStatus1,
    DriveStatus2,
    ProtectionStatus,
    SystemProtection,
)
from .protocol.commands import (
    ADDRESS_MAX,
    COMMAND_PARAM_COUNT,
    DRIVE_NAME_SIZE,
    FULL_ACCESS_MASK,
    REG_ACCESS_CONTROL,
    REG_BRIDGE_CONTROL,
    REG_BRIDGE_STATUS,
    REG_COMMAND_PARAMS,
    REG_DRIVE_NAME,
    REG_DRIVE_STATUS_1,
    REG_DRIVE_STATUS_2,
    REG_PRODUCT_INFO,
    REG_PROTECTION_STATUS,
    REG_SYSTEM_PROTECTION,
    AccessType,
)
from .protocol.errors import ShortResponseError
from .protocol.session import DEFAULT_TIMEOUT_MS, DriveSession, FrameObserver
from .transport.serial_connection import DEFAULT_BAUDRATE, DEFAULT_PORT, SerialConnection

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS = ADDRESS_MAX

UINT16 = struct.Struct("=H")
UINT32 = struct.Struct("=I")


class AMCDrive:
    """Typed parameter access on top of a drive session.

    Usage::

        drive = AMCDrive.open("/dev/ttyUSB0", 115200, address=0x3F)
        drive.get_access_control()
        print(drive.get_drive_name())
        drive.close()
    """

    def __init__(self, session: DriveSession) -> None:
        self.session = session

    @classmethod
    def open(
        cls,
        port: str = DEFAULT_PORT,
        baudrate: int = DEFAULT_BAUDRATE,
        address: int = DEFAULT_ADDRESS,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        diagnostics: bool = False,
        observer: FrameObserver | None = None,
    ) -> AMCDrive:
        """Open a serial port and start a session with the drive at ``address``."""
        connection = SerialConnection(port, baudrate)
        connection.open()
        session = DriveSession(
            connection, address, timeout_ms=timeout_ms,
            diagnostics=diagnostics, observer=observer,
        )
        return cls(session)

    def close(self) -> None:
        close = getattr(self.session.transport, "close", None)
        if close is not None:
            close()

    # --- generic register access ------------------------------------------
    def get_string(self, index: int, offset: int, size: int) -> bytes:
        """Read up to ``size`` bytes from a register."""
        response = self.session.transact(AccessType.READ, index, offset, response_len=size)
        return response.payload

    def get_uint16(self, index: int, offset: int) -> int:
        return self._get_int(index, offset, UINT16)

    def get_uint32(self, index: int, offset: int) -> int:
        return self._get_int(index, offset, UINT32)

    def _get_int(self, index: int, offset: int, fmt: struct.Struct) -> int:
        data = self.get_string(index, offset, fmt.size)
        if len(data) < fmt.size:
            raise ShortResponseError(fmt.size, len(data))
        return fmt.unpack(data[: fmt.size])[0]

    def write_string(self, index: int, offset: int, data: bytes) -> None:
        """Write ``data`` to a register; the response carries no payload."""
        self.session.transact(AccessType.WRITE, index, offset, payload=bytes(data))

    def write_uint16(self, index: int, offset: int, value: int) -> None:
        self.write_string(index, offset, UINT16.pack(value))

    def write_uint32(self, index: int, offset: int, value: int) -> None:
        self.write_string(index, offset, UINT32.pack(value))

    # --- well-known registers ---------------------------------------------
    def get_access_control(self) -> None:
        """Gain write access to every register of the drive."""
        self.write_uint16(*REG_ACCESS_CONTROL, FULL_ACCESS_MASK)
        logger.info("Write access granted on drive 0x%02X", self.session.address)

    def get_product_info(self) -> ProductInfo:
        return ProductInfo.from_bytes(self.get_string(*REG_PRODUCT_INFO, PRODUCT_INFO_SIZE))

    def get_drive_name(self) -> str:
        raw = self.get_string(*REG_DRIVE_NAME, DRIVE_NAME_SIZE)
        return raw.split(b"\x00")[0].decode("ascii", errors="replace")

    def get_command_param(self, param: int) -> int:
        """Read interface input ``param`` (0-15)."""
        _check_param(param)
        return self.get_uint32(REG_COMMAND_PARAMS[0], param)

    def set_command_param(self, param: int, value: int) -> None:
        """Write interface input ``param`` (0-15)."""
        _check_param(param)
        self.write_uint32(REG_COMMAND_PARAMS[0], param, value & 0xFFFFFFFF)

    # --- bridge control -----------------------------------------------------
    def get_bridge_control(self) -> BridgeControl:
        return BridgeControl(self.get_uint16(*REG_BRIDGE_CONTROL))

    def set_bridge_control(self, control: BridgeControl) -> None:
        self.write_uint16(*REG_BRIDGE_CONTROL, int(control))

    def enable_bridge(self, enabled: bool = True) -> BridgeControl:
        """Clear (or set) the bridge inhibit bit, keeping the other bits."""
        control = int(self.get_bridge_control())
        if enabled:
            control &= ~BridgeControl.INHIBIT.value
        else:
            control |= BridgeControl.INHIBIT.value
        self.set_bridge_control(BridgeControl(control))
        return BridgeControl(control)

    def quick_stop(self, active: bool = True) -> BridgeControl:
        control = int(self.get_bridge_control())
        if active:
            control |= BridgeControl.QUICK_STOP.value
        else:
            control &= ~BridgeControl.QUICK_STOP.value
        self.set_bridge_control(BridgeControl(control))
        return BridgeControl(control)

    def reset_events(self) -> None:
        """Pulse the reset-events bit to clear latched events."""
        control = int(self.get_bridge_control()) | BridgeControl.RESET_EVENTS.value
        self.set_bridge_control(BridgeControl(control))
        control &= ~BridgeControl.RESET_EVENTS.value
        self.set_bridge_control(BridgeControl(control))

    def get_drive_status(self) -> DriveStatus:
        return DriveStatus(
            bridge=BridgeStatus(self.get_uint16(*REG_BRIDGE_STATUS)),
            protection=ProtectionStatus(self.get_uint16(*REG_PROTECTION_STATUS)),
            system=SystemProtection(self.get_uint16(*REG_SYSTEM_PROTECTION)),
            drive1=DriveStatus1(self.get_uint16(*REG_DRIVE_STATUS_1)),
            drive2=DriveStatus2(self.get_uint16(*REG_DRIVE_STATUS_2)),
        )


def _check_param(param: int) -> None:
    if not 0 <= param < COMMAND_PARAM_COUNT:
        raise ValueError(f"Interface number must be 0-{COMMAND_PARAM_COUNT - 1}, got {param}")
