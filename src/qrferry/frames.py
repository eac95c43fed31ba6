from __future__ import annotations

from dataclasses import dataclass

from . import config
from .errors import FrameError, FrameMismatch, InvalidIndex
from .hashing import bytes_to_hex
from .indexing import decode_index, encode_index
from .models import FileDescriptor


def header_size(index_bytes: int) -> int:
    return config.HASH_SIZE + index_bytes


def peek_hash(data: bytes) -> str:
    """Hex digest carried by a raw frame, without validating the rest."""
    return bytes_to_hex(bytes(data[: config.HASH_SIZE]))


@dataclass
class Frame:
    index: int
    payload: bytes

    def to_bytes(self, file_hash: bytes, index_bytes: int) -> bytes:
        if len(file_hash) != config.HASH_SIZE:
            raise FrameError(f"file hash must be {config.HASH_SIZE} bytes")
        return bytes(file_hash) + encode_index(self.index, index_bytes) + bytes(self.payload)

    @classmethod
    def from_bytes(cls, data: bytes, descriptor: FileDescriptor) -> "Frame":
        data = bytes(data)
        if len(data) < config.HASH_SIZE:
            raise FrameError("frame too short")
        frame_hash = peek_hash(data)
        if frame_hash != descriptor.hash:
            raise FrameMismatch(frame_hash, descriptor.hash)
        if len(data) < header_size(descriptor.index_bytes):
            raise FrameError("frame header truncated")
        index = decode_index(data, config.HASH_SIZE, descriptor.index_bytes)
        if not 0 <= index < descriptor.total_chunks:
            raise InvalidIndex(index, descriptor.total_chunks)
        return cls(index=index, payload=data[header_size(descriptor.index_bytes) :])
