from __future__ import annotations

import logging
import os
from typing import Iterator, List, Optional, Union

from . import config
from .frames import Frame
from .hashing import bytes_to_hex, digest, file_digest
from .indexing import width_for
from .models import (
    ChunkSet,
    ChunkSizeAdjustment,
    ErrorCorrectionLevel,
    FileChunk,
    FileDescriptor,
    estimate_total_chunks,
)

logger = logging.getLogger(__name__)

Level = Union[ErrorCorrectionLevel, str]


def max_chunk_size(level: Level) -> int:
    """Largest payload that still fits one QR code at ``level``."""
    key = ErrorCorrectionLevel(level).value
    return config.QR_CAPACITY[key] - config.HASH_SIZE - config.MAX_INDEX_BYTES


def validate_chunk_size(chunk_size: int, level: Level) -> ChunkSizeAdjustment:
    if chunk_size <= 0:
        raise ValueError("chunk size must be > 0")
    max_size = max_chunk_size(level)
    if chunk_size > max_size:
        return ChunkSizeAdjustment(adjusted_size=max_size, was_adjusted=True)
    return ChunkSizeAdjustment(adjusted_size=chunk_size, was_adjusted=False)


def build_descriptor(file_hash: bytes, name: str, size: int, chunk_size: int) -> FileDescriptor:
    total_chunks = estimate_total_chunks(size, chunk_size)
    return FileDescriptor(
        hash=bytes_to_hex(file_hash),
        name=name,
        size=size,
        total_chunks=total_chunks,
        index_bytes=width_for(total_chunks),
    )


def _wrap(
    payloads: Iterator[bytes],
    file_hash: bytes,
    descriptor: FileDescriptor,
) -> List[FileChunk]:
    chunks: List[FileChunk] = []
    for idx, payload in enumerate(payloads):
        frame = Frame(index=idx, payload=payload)
        chunks.append(
            FileChunk(
                binary_data=frame.to_bytes(file_hash, descriptor.index_bytes),
                chunk_index=idx,
                file_name=descriptor.name,
            )
        )
    return chunks


def split_bytes(data: bytes, chunk_size: int, file_name: str = "data.bin") -> ChunkSet:
    """Split an in-memory buffer into wire frames."""
    if chunk_size <= 0:
        raise ValueError("chunk size must be > 0")
    file_hash = digest(data)
    descriptor = build_descriptor(file_hash, file_name, len(data), chunk_size)
    payloads = (data[i : i + chunk_size] for i in range(0, len(data), chunk_size))
    chunks = _wrap(payloads, file_hash, descriptor)
    logger.debug("split %s into %d chunks of %d bytes", file_name, len(chunks), chunk_size)
    return ChunkSet(file_hash=file_hash, descriptor=descriptor, chunk_size=chunk_size, chunks=chunks)


def split_file_into_chunks(
    path: str,
    chunk_size: int,
    name: Optional[str] = None,
) -> ChunkSet:
    """Hash the file at ``path`` and split it into wire frames.

    Read errors propagate unchanged; nothing is retried.
    """
    if chunk_size <= 0:
        raise ValueError("chunk size must be > 0")
    file_hash = file_digest(path)
    size = os.path.getsize(path)
    descriptor = build_descriptor(file_hash, name or os.path.basename(path), size, chunk_size)
    chunks = _wrap(iter_chunks(path, chunk_size), file_hash, descriptor)
    if len(chunks) != descriptor.total_chunks:
        raise OSError(f"{path} changed while reading")
    logger.info(
        "split %s (%d bytes) into %d chunks, index width %d",
        descriptor.name,
        size,
        descriptor.total_chunks,
        descriptor.index_bytes,
    )
    return ChunkSet(file_hash=file_hash, descriptor=descriptor, chunk_size=chunk_size, chunks=chunks)


def iter_chunks(path: str, chunk_size: int) -> Iterator[bytes]:
    with open(path, "rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            yield chunk
