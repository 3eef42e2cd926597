"""
BLTE block-table container codec.

A BLTE container bundles one or more tagged blocks behind a fixed 12-byte
header and a block table:

- Fixed header: magic "BLTE", header size (data section offset), table
  format byte and a 24-bit block count.
- Block table: one row per block with raw size, logical size, a 16-byte hash
  and, for table format 0x10, a 16-byte uncompressed hash.
- Data section: each block's encoding tag byte followed by its payload.

Payload compression, encryption and hash computation are left to callers;
this package stores and retrieves tags, hashes and raw bytes. See
blte.container for encode/decode and blte.cli for the command-line tool.
"""

from .block import Block, EncodingMode, classify
from .constants import TABLE_FORMAT_EXTENDED, TABLE_FORMAT_STANDARD
from .container import decode, encode, encoded_size, read_header
from .errors import ArgumentError, BlteError, FormatError, TruncatedDataError, ValidationError
from .header import Header

__version__ = "0.1"

__all__ = [
    "Block",
    "EncodingMode",
    "classify",
    "encode",
    "decode",
    "encoded_size",
    "read_header",
    "Header",
    "TABLE_FORMAT_STANDARD",
    "TABLE_FORMAT_EXTENDED",
    "BlteError",
    "ArgumentError",
    "ValidationError",
    "FormatError",
    "TruncatedDataError",
]
