from __future__ import annotations

import hashlib


def md5_16(data: bytes) -> bytes:
    return hashlib.md5(data).digest()


def span_hash(tag: int, payload: bytes) -> bytes:
    """Hash of a block span as stored on disk: tag byte followed by payload."""
    h = hashlib.md5()
    h.update(bytes([tag]))
    h.update(payload)
    return h.digest()
