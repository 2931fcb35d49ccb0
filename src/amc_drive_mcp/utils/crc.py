"""Table-driven CRC-16 used by AMC drives.

The drive folds every byte through a 256-entry lookup table generated from
the polynomial 0x1021, starting from a zero accumulator (no reflection, no
final XOR). Header and payload checksums are computed independently, each
with its own fresh accumulator.
"""

from __future__ import annotations

CRC_POLY = 0x1021


def _shift_register(data: int, poly: int, accum: int) -> int:
    """Run one byte through an 8-bit hardware shift register."""
    data <<= 8
    for _ in range(8):
        if (data ^ accum) & 0x8000:
            accum = ((accum << 1) ^ poly) & 0xFFFF
        else:
            accum = (accum << 1) & 0xFFFF
        data <<= 1
    return accum


def make_table(poly: int = CRC_POLY) -> tuple[int, ...]:
    """Build the 256-entry lookup table for a 16-bit polynomial."""
    if not 0 <= poly <= 0xFFFF:
        raise ValueError(f"Polynomial must be 16 bits, got {poly:#x}")
    return tuple(_shift_register(i, poly, 0) for i in range(256))


def fold_byte(byte: int, accumulator: int, table: tuple[int, ...]) -> int:
    """Fold a single byte into the running accumulator and return it."""
    return ((accumulator << 8) & 0xFFFF) ^ table[((accumulator >> 8) ^ byte) & 0xFF]


def crc16(data: bytes, table: tuple[int, ...]) -> int:
    """Checksum ``data`` starting from a fresh zero accumulator."""
    accumulator = 0
    for byte in data:
        accumulator = fold_byte(byte, accumulator, table)
    return accumulator
