"""Shared helpers."""

from .crc import CRC_POLY, crc16, fold_byte, make_table
