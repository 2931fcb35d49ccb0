"""Product information record stored at register 0x8C.

Layout (offsets relative to the record start)::

    +------+-------+---------+--------+------------+------------+------+
    | rsvd | board | board   | board  | board      | board      | rsvd |
    | 2 B  | name  | version | serial | build date | build time | 30 B |
    +------+-------+---------+--------+------------+------------+------+
    | part number | version | serial | build date | build time |
    +-------------+---------+--------+------------+------------+

Every text field is 32 bytes of NUL-padded ASCII.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

FIELD_SIZE = 32

OFF_BOARD_NAME = 0x002
OFF_BOARD_VERSION = 0x022
OFF_BOARD_SERIAL = 0x042
OFF_BOARD_BUILD_DATE = 0x062
OFF_BOARD_BUILD_TIME = 0x082
OFF_PART_NUMBER = 0x0C0  # after 30 reserved bytes
OFF_PRODUCT_VERSION = 0x0E0
OFF_PRODUCT_SERIAL = 0x100
OFF_PRODUCT_BUILD_DATE = 0x120
OFF_PRODUCT_BUILD_TIME = 0x140

PRODUCT_INFO_SIZE = OFF_PRODUCT_BUILD_TIME + FIELD_SIZE  # 352 bytes


def _text(data: bytes, offset: int) -> str:
    raw = data[offset : offset + FIELD_SIZE]
    return raw.split(b"\x00")[0].decode("ascii", errors="replace").strip()


def _pack_text(buf: bytearray, offset: int, value: str) -> None:
    encoded = value.encode("ascii", errors="replace")[: FIELD_SIZE - 1]
    buf[offset : offset + len(encoded)] = encoded


@dataclass
class ProductInfo:
    """Identification strings of the control board and the product."""

    control_board_name: str = ""
    control_board_version: str = ""
    control_board_serial: str = ""
    control_board_build_date: str = ""
    control_board_build_time: str = ""
    product_part_number: str = ""
    product_version: str = ""
    product_serial_number: str = ""
    product_build_date: str = ""
    product_build_time: str = ""

    @classmethod
    def from_bytes(cls, data: bytes) -> ProductInfo:
        if len(data) < PRODUCT_INFO_SIZE:
            data = data + b"\x00" * (PRODUCT_INFO_SIZE - len(data))
        return cls(
            control_board_name=_text(data, OFF_BOARD_NAME),
            control_board_version=_text(data, OFF_BOARD_VERSION),
            control_board_serial=_text(data, OFF_BOARD_SERIAL),
            control_board_build_date=_text(data, OFF_BOARD_BUILD_DATE),
            control_board_build_time=_text(data, OFF_BOARD_BUILD_TIME),
            product_part_number=_text(data, OFF_PART_NUMBER),
            product_version=_text(data, OFF_PRODUCT_VERSION),
            product_serial_number=_text(data, OFF_PRODUCT_SERIAL),
            product_build_date=_text(data, OFF_PRODUCT_BUILD_DATE),
            product_build_time=_text(data, OFF_PRODUCT_BUILD_TIME),
        )

    def to_bytes(self) -> bytes:
        """Serialize to the 352-byte register layout."""
        buf = bytearray(PRODUCT_INFO_SIZE)
        _pack_text(buf, OFF_BOARD_NAME, self.control_board_name)
        _pack_text(buf, OFF_BOARD_VERSION, self.control_board_version)
        _pack_text(buf, OFF_BOARD_SERIAL, self.control_board_serial)
        _pack_text(buf, OFF_BOARD_BUILD_DATE, self.control_board_build_date)
        _pack_text(buf, OFF_BOARD_BUILD_TIME, self.control_board_build_time)
        _pack_text(buf, OFF_PART_NUMBER, self.product_part_number)
        _pack_text(buf, OFF_PRODUCT_VERSION, self.product_version)
        _pack_text(buf, OFF_PRODUCT_SERIAL, self.product_serial_number)
        _pack_text(buf, OFF_PRODUCT_BUILD_DATE, self.product_build_date)
        _pack_text(buf, OFF_PRODUCT_BUILD_TIME, self.product_build_time)
        return bytes(buf)

    def to_dict(self) -> dict:
        return asdict(self)
