"""Fixed-width big-endian chunk index codec."""

from __future__ import annotations

from . import config
from .errors import CapacityExceeded


def width_for(total_chunks: int) -> int:
    """Return the number of bytes needed to address ``total_chunks`` chunks."""
    if total_chunks < 0:
        raise ValueError("total_chunks must be >= 0")
    for width in range(1, config.MAX_INDEX_WIDTH + 1):
        if total_chunks <= 256 ** width:
            return width
    raise CapacityExceeded(f"{total_chunks} chunks exceed the maximum supported index width")


def encode_index(index: int, width: int) -> bytes:
    if width < 1:
        raise ValueError("width must be >= 1")
    if not 0 <= index < 256 ** width:
        raise ValueError(f"index {index} does not fit in {width} bytes")
    return index.to_bytes(width, "big")


def decode_index(data: bytes, offset: int, width: int) -> int:
    """Read ``width`` bytes from ``offset``; bytes past the end count as zero."""
    value = 0
    for pos in range(offset, offset + width):
        byte = data[pos] if 0 <= pos < len(data) else 0
        value = (value << 8) | byte
    return value
