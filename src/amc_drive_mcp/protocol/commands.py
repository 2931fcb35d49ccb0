"""Protocol constants: access types, response status codes and registers.

Drive registers are addressed by an (index, offset) pair: the index selects
a functional group and the offset a parameter within it.
"""

from __future__ import annotations

from enum import IntEnum

from .errors import (
    FrameError,
    InvalidCommandError,
    NoAccessError,
    ResponseIncompleteError,
    ResponseStatusError,
)

ADDRESS_BROADCAST = 0x00
ADDRESS_MIN = 0x01
ADDRESS_MAX = 0x3F
ADDRESS_MASTER = 0xFF


class AccessType(IntEnum):
    """Command type carried in the two low bits of the control byte."""

    UNUSED = 0
    READ = 1
    WRITE = 2
    READ_WRITE = 3


VALID_ACCESS_TYPES = (AccessType.READ, AccessType.WRITE, AccessType.READ_WRITE)


class ResponseStatus(IntEnum):
    """Values of the first status byte of a response."""

    COMPLETE = 1
    INCOMPLETE = 2
    INVALID = 3
    NO_ACCESS = 6
    FRAME_ERROR = 8


STATUS_ERRORS: dict[int, type[ResponseStatusError]] = {
    ResponseStatus.INCOMPLETE: ResponseIncompleteError,
    ResponseStatus.INVALID: InvalidCommandError,
    ResponseStatus.NO_ACCESS: NoAccessError,
    ResponseStatus.FRAME_ERROR: FrameError,
}


# (index, offset) pairs of well-known registers
REG_BRIDGE_CONTROL = (0x01, 0x00)
REG_BRIDGE_STATUS = (0x02, 0x00)
REG_PROTECTION_STATUS = (0x02, 0x01)
REG_SYSTEM_PROTECTION = (0x02, 0x02)
REG_DRIVE_STATUS_1 = (0x02, 0x03)
REG_DRIVE_STATUS_2 = (0x02, 0x04)
REG_ACCESS_CONTROL = (0x07, 0x00)
REG_DRIVE_NAME = (0x0B, 0x00)
REG_COMMAND_PARAMS = (0x45, 0x00)
REG_PRODUCT_INFO = (0x8C, 0x00)

# Value written to the access control register to unlock every register
FULL_ACCESS_MASK = 0x000E

DRIVE_NAME_SIZE = 256
COMMAND_PARAM_COUNT = 16

REGISTER_MAP: dict[str, tuple[int, int]] = {
    "bridge_control": REG_BRIDGE_CONTROL,
    "bridge_status": REG_BRIDGE_STATUS,
    "protection_status": REG_PROTECTION_STATUS,
    "system_protection": REG_SYSTEM_PROTECTION,
    "drive_status_1": REG_DRIVE_STATUS_1,
    "drive_status_2": REG_DRIVE_STATUS_2,
    "access_control": REG_ACCESS_CONTROL,
    "drive_name": REG_DRIVE_NAME,
    "command_params": REG_COMMAND_PARAMS,
    "product_info": REG_PRODUCT_INFO,
}
