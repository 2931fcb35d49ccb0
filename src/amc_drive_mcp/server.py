"""MCP server entry point for AMC servo drives.

Exposes drive registers and status as tools and resources via the Model
Context Protocol using the official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .drive import DEFAULT_ADDRESS, AMCDrive
from .models.status import BridgeControl
from .protocol.commands import COMMAND_PARAM_COUNT, REGISTER_MAP
from .protocol.errors import AMCError
from .protocol.session import DEFAULT_TIMEOUT_MS
from .transport.serial_connection import (
    DEFAULT_BAUDRATE,
    DEFAULT_PORT,
    SUPPORTED_BAUDRATES,
)

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "amc-drive",
    instructions="MCP server for AMC servo drives on an RS-485 link",
)

# Global connection state
_drive: AMCDrive | None = None


def _get_drive() -> AMCDrive:
    """Get the active drive, raising if not connected."""
    if _drive is None:
        raise RuntimeError(
            "Not connected to a drive. Use the 'connect' tool first."
        )
    return _drive


def _error(exc: Exception) -> dict[str, Any]:
    logger.warning("Drive request failed: %s", exc)
    return {"error": str(exc), "kind": type(exc).__name__}


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(
    port: str = DEFAULT_PORT,
    baudrate: int = DEFAULT_BAUDRATE,
    address: int = DEFAULT_ADDRESS,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    debug: bool = False,
) -> dict[str, Any]:
    """Open the serial port and gain register access on a drive.

    Args:
        port: Serial device (default /dev/ttyUSB0).
        baudrate: Line speed in baud (default 115200).
        address: Drive address 1-63 (default 63).
        timeout_ms: Response timeout per wait in milliseconds.
        debug: Log every frame sent and received.
    """
    global _drive
    if _drive is not None:
        return {"connected": True, "message": "Already connected"}

    if baudrate not in SUPPORTED_BAUDRATES:
        return {"error": f"Unsupported baud rate {baudrate}"}

    try:
        drive = AMCDrive.open(
            port, baudrate, address=address,
            timeout_ms=timeout_ms, diagnostics=debug,
        )
    except (ConnectionError, ValueError) as e:
        return _error(e)

    result: dict[str, Any] = {"connected": True, "port": port, "address": address}
    try:
        drive.get_access_control()
        result["access"] = True
    except AMCError as e:
        logger.warning("Could not get access to drive: %s", e)
        result["access"] = False

    _drive = drive
    return result


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the serial port."""
    global _drive
    if _drive is None:
        return {"disconnected": True}
    _drive.close()
    _drive = None
    return {"disconnected": True}


@mcp.tool()
def get_device_info() -> dict[str, Any]:
    """Retrieve the drive name and product identification strings."""
    drive = _get_drive()
    try:
        name = drive.get_drive_name()
        info = drive.get_product_info()
    except AMCError as e:
        return _error(e)

    result = info.to_dict()
    result["drive_name"] = name
    return result


# ─── BRIDGE TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def get_bridge_status() -> dict[str, Any]:
    """Read bridge control plus the bridge, protection and drive status words."""
    drive = _get_drive()
    try:
        control = drive.get_bridge_control()
        status = drive.get_drive_status()
    except AMCError as e:
        return _error(e)

    result = status.to_dict()
    result["control"] = {
        "raw": int(control),
        "inhibited": bool(control & BridgeControl.INHIBIT),
        "brake": bool(control & BridgeControl.BRAKE),
        "quick_stop": bool(control & BridgeControl.QUICK_STOP),
    }
    return result


@mcp.tool()
def enable_bridge(enabled: bool = True) -> dict[str, Any]:
    """Enable or inhibit the power bridge.

    Args:
        enabled: True clears the inhibit bit, False sets it.
    """
    drive = _get_drive()
    try:
        control = drive.enable_bridge(enabled)
    except AMCError as e:
        return _error(e)
    return {"enabled": enabled, "control": int(control)}


@mcp.tool()
def quick_stop(active: bool = True) -> dict[str, Any]:
    """Activate or release quick stop.

    Args:
        active: True sets the quick stop bit, False clears it.
    """
    drive = _get_drive()
    try:
        control = drive.quick_stop(active)
    except AMCError as e:
        return _error(e)
    return {"quick_stop": active, "control": int(control)}


@mcp.tool()
def reset_events() -> dict[str, Any]:
    """Reset latched drive events, if any."""
    drive = _get_drive()
    try:
        drive.reset_events()
    except AMCError as e:
        return _error(e)
    return {"reset": True}


# ─── INTERFACE INPUT TOOLS ───────────────────────────────────────────

@mcp.tool()
def get_interface_input(number: int) -> dict[str, Any]:
    """Read the value at an interface input.

    Args:
        number: Interface input 0-15.
    """
    if not 0 <= number < COMMAND_PARAM_COUNT:
        return {"error": f"Interface number {number} > {COMMAND_PARAM_COUNT - 1}"}
    drive = _get_drive()
    try:
        value = drive.get_command_param(number)
    except AMCError as e:
        return _error(e)
    return {"number": number, "value": value, "hex": f"0x{value:08X}"}


@mcp.tool()
def set_interface_input(number: int, value: int) -> dict[str, Any]:
    """Set the value at an interface input.

    Args:
        number: Interface input 0-15.
        value: Unsigned 32-bit value.
    """
    if not 0 <= number < COMMAND_PARAM_COUNT:
        return {"error": f"Interface number {number} > {COMMAND_PARAM_COUNT - 1}"}
    drive = _get_drive()
    try:
        drive.set_command_param(number, value)
    except AMCError as e:
        return _error(e)
    return {"number": number, "value": value & 0xFFFFFFFF}


# ─── RAW REGISTER TOOLS ──────────────────────────────────────────────

@mcp.tool()
def read_register(index: int, offset: int, size: int = 2) -> dict[str, Any]:
    """Read raw bytes from a drive register.

    Args:
        index: Register group index (0-255).
        offset: Offset within the group (0-255).
        size: Number of bytes to read, a multiple of 2 (max 510).
    """
    if size <= 0 or size % 2 or size > 510:
        return {"error": f"Size must be an even number of bytes 2-510, got {size}"}
    drive = _get_drive()
    try:
        data = drive.get_string(index, offset, size)
    except (AMCError, ValueError) as e:
        return _error(e)
    return {"index": index, "offset": offset, "data": data.hex(" ")}


@mcp.tool()
def write_register(index: int, offset: int, data: str) -> dict[str, Any]:
    """Write raw bytes to a drive register.

    Args:
        index: Register group index (0-255).
        offset: Offset within the group (0-255).
        data: Hex string, e.g. "0e 00"; must be a whole number of 16-bit words.
    """
    try:
        payload = bytes.fromhex(data)
    except ValueError:
        return {"error": f"Invalid hex data {data!r}"}
    drive = _get_drive()
    try:
        drive.write_string(index, offset, payload)
    except (AMCError, ValueError) as e:
        return _error(e)
    return {"index": index, "offset": offset, "written": len(payload)}


# ─── MCP RESOURCES ───────────────────────────────────────────────────

@mcp.resource("amc://registers")
def resource_registers() -> str:
    """Well-known (index, offset) register addresses."""
    return json.dumps({
        name: {"index": index, "offset": offset}
        for name, (index, offset) in REGISTER_MAP.items()
    })


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
