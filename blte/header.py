from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Optional

from .constants import (
    EMPTY_HASH,
    HEADER_FIXED_SIZE,
    MAGIC,
    ROW_SIZE_EXTENDED,
    ROW_SIZE_STANDARD,
    TABLE_FORMAT_EXTENDED,
    TABLE_FORMAT_STANDARD,
)
from .errors import FormatError, TruncatedDataError


# Fixed header (12 bytes, big-endian)
#  - magic[4]        "BLTE"
#  - header_size u32 offset of the data section
#  - table_format u8 0x0F or 0x10
#  - count_hi u16    block_count >> 8
#  - count_lo u8     block_count & 0xFF
_HEADER_STRUCT = struct.Struct(">4sIBHB")

# Table rows
#  - raw_size u32 (span length, tag byte included)
#  - logical_size u32
#  - hash[16]
#  - uncompressed_hash[16] (0x10 only)
_ROW_STANDARD = struct.Struct(">II16s")
_ROW_EXTENDED = struct.Struct(">II16s16s")


def row_size(table_format: int) -> int:
    return ROW_SIZE_STANDARD if table_format == TABLE_FORMAT_STANDARD else ROW_SIZE_EXTENDED


def expected_header_size(block_count: int, table_format: int) -> int:
    return HEADER_FIXED_SIZE + block_count * row_size(table_format)


def split_block_count(count: int):
    return count >> 8, count & 0xFF


def join_block_count(hi: int, lo: int) -> int:
    return (hi << 8) | lo


@dataclass
class Header:
    header_size: int
    table_format: int
    block_count: int

    @property
    def row_size(self) -> int:
        return row_size(self.table_format)

    def pack(self) -> bytes:
        hi, lo = split_block_count(self.block_count)
        return _HEADER_STRUCT.pack(MAGIC, self.header_size, self.table_format, hi, lo)


@dataclass
class TableRow:
    raw_size: int
    logical_size: int
    hash: bytes
    uncompressed_hash: Optional[bytes] = None

    def pack_into(self, buf: bytearray, offset: int, table_format: int) -> None:
        if table_format == TABLE_FORMAT_EXTENDED:
            _ROW_EXTENDED.pack_into(
                buf, offset, self.raw_size, self.logical_size, self.hash, self.uncompressed_hash or EMPTY_HASH
            )
        else:
            _ROW_STANDARD.pack_into(buf, offset, self.raw_size, self.logical_size, self.hash)


def parse_header(data) -> Header:
    """Parse and validate the fixed 12-byte header at the start of ``data``."""
    if len(data) < HEADER_FIXED_SIZE:
        raise FormatError(f"Data is too short to be a valid BLTE container ({len(data)} bytes)")
    magic, header_size, table_format, hi, lo = _HEADER_STRUCT.unpack_from(data, 0)
    if magic != MAGIC:
        raise FormatError(f"Bad BLTE magic {bytes(magic)!r}")
    if table_format not in (TABLE_FORMAT_STANDARD, TABLE_FORMAT_EXTENDED):
        raise FormatError(f"Unsupported BLTE table format 0x{table_format:02X} or data is corrupted")
    block_count = join_block_count(hi, lo)
    if block_count == 0:
        raise FormatError("No blocks to decode or data is corrupted")
    return Header(header_size=header_size, table_format=table_format, block_count=block_count)


def parse_row(data, index: int, table_format: int) -> TableRow:
    offset = HEADER_FIXED_SIZE + index * row_size(table_format)
    try:
        if table_format == TABLE_FORMAT_EXTENDED:
            raw_size, logical_size, h, uh = _ROW_EXTENDED.unpack_from(data, offset)
        else:
            raw_size, logical_size, h = _ROW_STANDARD.unpack_from(data, offset)
            uh = None
    except struct.error:
        raise TruncatedDataError(
            f"Block table row {index} at offset {offset} runs past the end of the data ({len(data)} bytes)"
        ) from None
    return TableRow(raw_size=raw_size, logical_size=logical_size, hash=bytes(h), uncompressed_hash=bytes(uh) if uh is not None else None)
