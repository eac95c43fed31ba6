"""JSON control messages exchanged as their own QR codes.

Two message types exist, discriminated by the ``type`` field:

* ``fileInfo`` - announced once by the sender before any binary frame.
* ``recovery`` - produced by the receiver to request missing chunks.
"""

from __future__ import annotations

import dataclasses
import json
from typing import Tuple, Union

from . import config
from .errors import MessageError
from .indexing import width_for
from .models import ChunkSet, FileDescriptor, SymbolKind, estimate_total_chunks

FILE_INFO_TYPE = "fileInfo"
RECOVERY_TYPE = "recovery"


def _require_int(data: dict, key: str) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise MessageError(f"'{key}' must be a non-negative integer")
    return value


def _require_str(data: dict, key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise MessageError(f"'{key}' must be a string")
    return value


def _require_hash(data: dict, key: str) -> str:
    value = _require_str(data, key)
    try:
        raw = bytes.fromhex(value)
    except ValueError as exc:
        raise MessageError(f"'{key}' is not a hex digest") from exc
    if len(raw) != config.HASH_SIZE:
        raise MessageError(f"'{key}' must be {config.HASH_SIZE} bytes")
    return value.lower()


@dataclasses.dataclass(frozen=True)
class FileInfoMessage:
    file_hash: str
    file_name: str
    file_size: int
    total_chunks: int
    chunk_size: int

    type = FILE_INFO_TYPE

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "fileHash": self.file_hash,
            "fileName": self.file_name,
            "fileSize": self.file_size,
            "totalChunks": self.total_chunks,
            "chunkSize": self.chunk_size,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    def to_descriptor(self) -> FileDescriptor:
        return FileDescriptor(
            hash=self.file_hash.lower(),
            name=self.file_name,
            size=self.file_size,
            total_chunks=self.total_chunks,
            index_bytes=width_for(self.total_chunks),
        )

    def check_layout(self) -> None:
        """Reject chunk counts a sender could not have produced."""
        max_payload = config.QR_CAPACITY["L"] - config.HASH_SIZE - config.MAX_INDEX_BYTES
        if not 0 < self.chunk_size <= max_payload:
            raise MessageError(f"chunk size {self.chunk_size} outside 1..{max_payload}")
        if self.total_chunks > 256 ** config.MAX_INDEX_BYTES:
            raise MessageError(f"{self.total_chunks} chunks exceed the supported index range")
        expected = estimate_total_chunks(self.file_size, self.chunk_size)
        if self.total_chunks != expected:
            raise MessageError(
                f"{self.total_chunks} chunks announced, {expected} expected for "
                f"{self.file_size} bytes in chunks of {self.chunk_size}"
            )

    @classmethod
    def from_chunk_set(cls, chunk_set: ChunkSet) -> "FileInfoMessage":
        desc = chunk_set.descriptor
        return cls(
            file_hash=desc.hash,
            file_name=desc.name,
            file_size=desc.size,
            total_chunks=desc.total_chunks,
            chunk_size=chunk_set.chunk_size,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "FileInfoMessage":
        if data.get("type") != FILE_INFO_TYPE:
            raise MessageError(f"not a {FILE_INFO_TYPE} message: {data.get('type')!r}")
        message = cls(
            file_hash=_require_hash(data, "fileHash"),
            file_name=_require_str(data, "fileName"),
            file_size=_require_int(data, "fileSize"),
            total_chunks=_require_int(data, "totalChunks"),
            chunk_size=_require_int(data, "chunkSize"),
        )
        message.check_layout()
        return message


@dataclasses.dataclass(frozen=True)
class RecoveryMessage:
    file_hash: str
    missing_chunks: Tuple[int, ...]

    type = RECOVERY_TYPE

    def __post_init__(self) -> None:
        object.__setattr__(self, "missing_chunks", tuple(self.missing_chunks))

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "fileHash": self.file_hash,
            "missingChunks": list(self.missing_chunks),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: dict) -> "RecoveryMessage":
        if data.get("type") != RECOVERY_TYPE:
            raise MessageError(f"not a {RECOVERY_TYPE} message: {data.get('type')!r}")
        file_hash = _require_str(data, "fileHash")
        missing = data.get("missingChunks")
        if not isinstance(missing, list):
            raise MessageError("'missingChunks' must be a list")
        for idx in missing:
            if isinstance(idx, bool) or not isinstance(idx, int):
                raise MessageError(f"invalid chunk index in 'missingChunks': {idx!r}")
        return cls(file_hash=file_hash, missing_chunks=missing)


Message = Union[FileInfoMessage, RecoveryMessage]

_MESSAGE_TYPES = {
    FILE_INFO_TYPE: FileInfoMessage,
    RECOVERY_TYPE: RecoveryMessage,
}


def looks_like_json(data: Union[bytes, str]) -> bool:
    if isinstance(data, str):
        return data[:1] == "{"
    return data[:1] == b"{"


def classify_symbol(data: bytes, file_hash: bytes = b"") -> SymbolKind:
    """Tell a JSON control message from a binary frame.

    A symbol carrying the active file hash is always a frame, even when the
    hash happens to start with "{".
    """
    if file_hash and data[: config.HASH_SIZE] == file_hash:
        return SymbolKind.FRAME
    if looks_like_json(data):
        return SymbolKind.MESSAGE
    return SymbolKind.FRAME


def parse_message(data: Union[bytes, str]) -> Message:
    """Decode a scanned JSON symbol into its message type."""
    try:
        text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
        obj = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MessageError(f"invalid JSON message: {exc}") from exc
    if not isinstance(obj, dict):
        raise MessageError("message must be a JSON object")
    msg_type = obj.get("type")
    cls = _MESSAGE_TYPES.get(msg_type) if isinstance(msg_type, str) else None
    if cls is None:
        raise MessageError(f"unknown message type: {msg_type!r}")
    return cls.from_dict(obj)
