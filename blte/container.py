"""
Encode/decode of BLTE containers.

Layout:
    [ fixed header (12) ][ block table (row_size * N) ][ tag | payload ] * N

The data section starts at the header_size stored in the fixed header and
block boundaries come only from each row's raw_size; there is no in-band
delimiter. Payload bytes are opaque here: compression, encryption and
hashing belong to callers.
"""
from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

from .block import Block
from .constants import (
    HEADER_FIXED_SIZE,
    MAX_BLOCK_COUNT,
    MAX_UINT32,
    TABLE_FORMATS,
)
from .errors import ArgumentError, FormatError, TruncatedDataError
from .header import (
    Header,
    TableRow,
    expected_header_size,
    parse_header,
    parse_row,
    row_size,
)


logger = logging.getLogger(__name__)


def _check_table_format(table_format: int) -> None:
    if isinstance(table_format, bool) or table_format not in TABLE_FORMATS:
        raise ArgumentError(f"Unsupported BLTE table format {table_format!r}")


def _check_block_count(count: int) -> None:
    if count > MAX_BLOCK_COUNT:
        raise ArgumentError(f"{count} blocks exceed the 24-bit block count limit ({MAX_BLOCK_COUNT})")


def _view(buffer) -> memoryview:
    if buffer is None:
        raise ArgumentError("buffer is required")
    try:
        return memoryview(buffer).cast("B")
    except TypeError:
        raise ArgumentError(f"buffer must be bytes-like, got {type(buffer).__name__}") from None


def read_header(buffer) -> Header:
    """Parse only the fixed header of a container."""
    return parse_header(_view(buffer))


def encoded_size(blocks: Sequence[Block], table_format: int) -> int:
    return expected_header_size(len(blocks), table_format) + sum(b.span_size for b in blocks)


def decode(buffer, *, strict: bool = False) -> Tuple[List[Block], int]:
    """Decode a BLTE container into its blocks.

    Returns ``(blocks, table_format)``. The data section is located through the
    stored header size. With ``strict`` the stored header size must equal the
    one implied by the block count and no bytes may follow the last block;
    otherwise those mismatches are only logged.

    Raises FormatError (TruncatedDataError for short data) on any malformed input.
    """
    data = _view(buffer)
    header = parse_header(data)
    fmt = header.table_format
    logger.debug(
        "BLTE header: header_size=%d table_format=0x%02X block_count=%d",
        header.header_size,
        fmt,
        header.block_count,
    )

    expected = expected_header_size(header.block_count, fmt)
    if header.header_size != expected:
        if strict:
            raise FormatError(f"Header size {header.header_size} does not match {expected} for {header.block_count} block(s)")
        logger.warning("stored header size %d differs from computed %d; trusting stored value", header.header_size, expected)

    blocks: List[Block] = []
    cursor = header.header_size
    for i in range(header.block_count):
        row = parse_row(data, i, fmt)
        if row.raw_size < 1:
            raise FormatError(f"Block {i} has raw size 0; no room for its encoding tag")
        end = cursor + row.raw_size
        if end > len(data):
            raise TruncatedDataError(
                f"Block {i} spans [{cursor}, {end}) but data is only {len(data)} bytes; corrupt or truncated data"
            )
        logger.debug("block %d: offset=%d raw_size=%d logical_size=%d", i, cursor, row.raw_size, row.logical_size)
        block = Block(
            data[cursor + 1 : end],
            encoding_tag=data[cursor],
            logical_size=row.logical_size,
            hash=row.hash,
        )
        if row.uncompressed_hash is not None:
            block.uncompressed_hash = row.uncompressed_hash
        blocks.append(block)
        cursor = end

    if cursor != len(data):
        if strict:
            raise FormatError(f"{len(data) - cursor} trailing byte(s) after the last block")
        logger.warning("ignoring %d trailing byte(s) after the last block", len(data) - cursor)

    return blocks, fmt


def encode(blocks: Sequence[Block], table_format: int) -> bytes:
    """Serialize ``blocks`` into a new BLTE container using ``table_format`` rows."""
    if blocks is None:
        raise ArgumentError("blocks is required")
    blocks = list(blocks)
    if not blocks:
        raise ArgumentError("No blocks to encode")
    _check_table_format(table_format)
    _check_block_count(len(blocks))
    for i, block in enumerate(blocks):
        if not isinstance(block, Block):
            raise ArgumentError(f"item {i} is {type(block).__name__}, not Block")
        if block.span_size > MAX_UINT32:
            raise ArgumentError(f"Block {i} payload is too large for a 32-bit raw size")
        if block.logical_size > MAX_UINT32:
            raise ArgumentError(f"Block {i} logical size {block.logical_size} does not fit in 32 bits")

    header_size = expected_header_size(len(blocks), table_format)
    total = encoded_size(blocks, table_format)

    out = bytearray(total)
    out[:HEADER_FIXED_SIZE] = Header(header_size, table_format, len(blocks)).pack()

    stride = row_size(table_format)
    cursor = header_size
    for i, block in enumerate(blocks):
        TableRow(
            raw_size=block.span_size,
            logical_size=block.logical_size,
            hash=block.hash,
            uncompressed_hash=block.uncompressed_hash,
        ).pack_into(out, HEADER_FIXED_SIZE + i * stride, table_format)
        out[cursor] = block.encoding_tag
        out[cursor + 1 : cursor + block.span_size] = block.raw_data
        cursor += block.span_size

    logger.debug("encoded %d block(s), table_format=0x%02X, %d bytes", len(blocks), table_format, total)
    return bytes(out)
