# Magic and fixed header
MAGIC = b"BLTE"
HEADER_FIXED_SIZE = 12  # magic(4) + header_size(4) + table_format(1) + block_count(3)

# Table formats (row layouts)
TABLE_FORMAT_STANDARD = 0x0F  # rawSize, logicalSize, hash
TABLE_FORMAT_EXTENDED = 0x10  # ... plus uncompressedHash
TABLE_FORMATS = (TABLE_FORMAT_STANDARD, TABLE_FORMAT_EXTENDED)

ROW_SIZE_STANDARD = 24
ROW_SIZE_EXTENDED = 40

HASH_SIZE = 16

MAX_BLOCK_COUNT = 0xFFFFFF  # 24-bit count field
MAX_UINT32 = 0xFFFFFFFF


# Encoding tags (first byte of every block span)
TAG_PLAIN = ord("N")
TAG_ZLIB = ord("Z")
TAG_LZ4HC = ord("4")
TAG_NESTED = ord("F")
TAG_ENCRYPTED = ord("E")

DEFAULT_TAG = TAG_PLAIN
EMPTY_HASH = b"\x00" * HASH_SIZE
