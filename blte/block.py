from __future__ import annotations

from enum import Enum
from typing import Optional, Union

from .constants import (
    DEFAULT_TAG,
    EMPTY_HASH,
    HASH_SIZE,
    TAG_ENCRYPTED,
    TAG_LZ4HC,
    TAG_NESTED,
    TAG_PLAIN,
    TAG_ZLIB,
)
from .errors import ValidationError


class EncodingMode(Enum):
    UNKNOWN = 0
    PLAIN = TAG_PLAIN
    ZLIB = TAG_ZLIB
    LZ4HC = TAG_LZ4HC
    NESTED = TAG_NESTED
    ENCRYPTED = TAG_ENCRYPTED


TagLike = Union[int, str, bytes, bytearray, EncodingMode]


_MODES_BY_TAG = {m.value: m for m in EncodingMode if m is not EncodingMode.UNKNOWN}


def classify(tag: int) -> EncodingMode:
    """Map a raw tag byte to its EncodingMode; unrecognized bytes give UNKNOWN."""
    return _MODES_BY_TAG.get(tag, EncodingMode.UNKNOWN)


def _coerce_tag(value: TagLike) -> int:
    if isinstance(value, EncodingMode):
        if value is EncodingMode.UNKNOWN:
            raise ValidationError("UNKNOWN has no tag byte; pass the raw tag instead")
        return value.value
    if isinstance(value, int) and not isinstance(value, bool):
        if 0 <= value <= 0xFF:
            return value
        raise ValidationError(f"encoding tag {value} does not fit in one byte")
    if isinstance(value, str):
        value = value.encode("latin-1") if len(value) == 1 and ord(value) <= 0xFF else b""
    if isinstance(value, (bytes, bytearray)) and len(value) == 1:
        return value[0]
    raise ValidationError(f"encoding tag must be a single byte, got {value!r}")


def _coerce_hash(value, what: str) -> bytes:
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise ValidationError(f"{what} must be bytes, got {type(value).__name__}")
    value = bytes(value)
    if len(value) != HASH_SIZE:
        raise ValidationError(f"{what} must be {HASH_SIZE} bytes long, got {len(value)}")
    return value


class Block:
    """One tagged chunk of a BLTE container.

    ``raw_data`` is the encoded payload without its tag byte. The codec never
    looks inside it, and ``logical_size`` is not checked against it.
    """

    def __init__(
        self,
        raw_data: bytes = b"",
        *,
        encoding_tag: TagLike = DEFAULT_TAG,
        logical_size: int = 0,
        hash: bytes = EMPTY_HASH,
        uncompressed_hash: Optional[bytes] = None,
    ):
        self.raw_data = raw_data
        self.encoding_tag = encoding_tag
        self.logical_size = logical_size
        self.hash = hash
        self.uncompressed_hash = EMPTY_HASH if uncompressed_hash is None else uncompressed_hash

    @property
    def encoding_tag(self) -> int:
        return self._encoding_tag

    @encoding_tag.setter
    def encoding_tag(self, value: TagLike) -> None:
        self._encoding_tag = _coerce_tag(value)

    @property
    def mode(self) -> EncodingMode:
        return classify(self._encoding_tag)

    @property
    def hash(self) -> bytes:
        return self._hash

    @hash.setter
    def hash(self, value: bytes) -> None:
        self._hash = _coerce_hash(value, "hash")

    @property
    def uncompressed_hash(self) -> bytes:
        return self._uncompressed_hash

    @uncompressed_hash.setter
    def uncompressed_hash(self, value: bytes) -> None:
        self._uncompressed_hash = _coerce_hash(value, "uncompressed hash")

    @property
    def logical_size(self) -> int:
        return self._logical_size

    @logical_size.setter
    def logical_size(self, value: int) -> None:
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise ValidationError(f"logical size must be a non-negative int, got {value!r}")
        self._logical_size = value

    @property
    def raw_data(self) -> bytes:
        return self._raw_data

    @raw_data.setter
    def raw_data(self, value: bytes) -> None:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise ValidationError(f"raw data must be bytes, got {type(value).__name__}")
        # own a private copy; never alias a caller buffer
        self._raw_data = bytes(value)

    @property
    def span_size(self) -> int:
        """On-disk size of the block: tag byte plus payload."""
        return len(self._raw_data) + 1

    def _key(self):
        return (self._encoding_tag, self._logical_size, self._hash, self._uncompressed_hash, self._raw_data)

    def __eq__(self, other):
        if not isinstance(other, Block):
            return NotImplemented
        return self._key() == other._key()

    __hash__ = None  # mutable

    def __repr__(self):
        return (
            f"Block(raw_data={self._raw_data!r}, encoding_tag={chr(self._encoding_tag)!r}, "
            f"logical_size={self._logical_size}, hash={self._hash.hex()}, "
            f"uncompressed_hash={self._uncompressed_hash.hex()})"
        )

    def __str__(self):
        return (
            f"Block(mode={self.mode.name}, logical_size={self._logical_size}, "
            f"hash={self._hash.hex().upper()}, uncompressed_hash={self._uncompressed_hash.hex().upper()})"
        )
