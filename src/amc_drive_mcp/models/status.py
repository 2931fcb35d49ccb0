"""Bridge, protection and drive status bit flags.

All of these registers are 16-bit words read from index 0x01 (bridge
control) and index 0x02, offsets 0-4 (status).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntFlag


class BridgeControl(IntFlag):
    INHIBIT = 1 << 0
    BRAKE = 1 << 1
    QUICK_STOP = 1 << 6
    RESET_EVENTS = 1 << 12


class BridgeStatus(IntFlag):
    ENABLED = 1 << 0
    DYNAMIC_BRAKE = 1 << 1
    SHUNT = 1 << 2
    POSITIVE_STOP = 1 << 3
    NEGATIVE_STOP = 1 << 4
    POSITIVE_TORQUE_INHIBIT = 1 << 5
    NEGATIVE_TORQUE_INHIBIT = 1 << 6
    EXTERNAL_BRAKE = 1 << 7


class ProtectionStatus(IntFlag):
    RESET = 1 << 0
    INTERNAL_ERROR = 1 << 1
    SHORT_CIRCUIT = 1 << 2
    OVERCURRENT = 1 << 3
    UNDERVOLTAGE = 1 << 4
    OVERVOLTAGE = 1 << 5
    OVERTEMP = 1 << 6


class SystemProtection(IntFlag):
    RESTORE_ERROR = 1 << 0
    STORE_ERROR = 1 << 1
    MOTOR_OVERTEMP = 1 << 4
    FEEDBACK_ERROR = 1 << 6
    OVERSPEED = 1 << 7
    COMMUNICATION_ERROR = 1 << 10


class DriveStatus1(IntFlag):
    LOG_MISSED = 1 << 0
    COMMANDED_INHIBIT = 1 << 1
    USER_INHIBIT = 1 << 2
    POSITIVE_INHIBIT = 1 << 3
    NEGATIVE_INHIBIT = 1 << 4
    CURRENT_LIMIT = 1 << 5
    CONTINUOUS_CURRENT_LIMIT = 1 << 6
    CURRENT_LOOP_SATURATED = 1 << 7
    COMMANDED_DYNAMIC_BRAKE = 1 << 12
    USER_DYNAMIC_BRAKE = 1 << 13
    SHUNT_REGULATOR = 1 << 14


class DriveStatus2(IntFlag):
    ZERO_VELOCITY = 1 << 0
    AT_COMMAND = 1 << 1
    VELOCITY_FOLLOWING_ERROR = 1 << 2
    POSITIVE_VELOCITY_LIMIT = 1 << 3
    NEGATIVE_VELOCITY_LIMIT = 1 << 4
    COMMAND_PROFILER = 1 << 5


def flag_names(flags: IntFlag) -> list[str]:
    """Names of the members set in ``flags``, lowest bit first."""
    return [member.name.lower() for member in type(flags) if member in flags]


@dataclass
class DriveStatus:
    """Snapshot of the five status words at index 0x02."""

    bridge: BridgeStatus = BridgeStatus(0)
    protection: ProtectionStatus = ProtectionStatus(0)
    system: SystemProtection = SystemProtection(0)
    drive1: DriveStatus1 = DriveStatus1(0)
    drive2: DriveStatus2 = DriveStatus2(0)

    @property
    def bridge_enabled(self) -> bool:
        return BridgeStatus.ENABLED in self.bridge

    @property
    def faulted(self) -> bool:
        return bool(self.protection) or bool(self.system)

    def to_dict(self) -> dict:
        return {
            "bridge": {"raw": int(self.bridge), "flags": flag_names(self.bridge)},
            "protection": {"raw": int(self.protection), "flags": flag_names(self.protection)},
            "system": {"raw": int(self.system), "flags": flag_names(self.system)},
            "drive1": {"raw": int(self.drive1), "flags": flag_names(self.drive1)},
            "drive2": {"raw": int(self.drive2), "flags": flag_names(self.drive2)},
            "bridge_enabled": self.bridge_enabled,
            "faulted": self.faulted,
        }
