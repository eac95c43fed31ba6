from __future__ import annotations

import dataclasses
import enum
import os
from typing import List, Optional


class ErrorCorrectionLevel(str, enum.Enum):
    L = "L"
    M = "M"
    Q = "Q"
    H = "H"


class TransmissionMode(str, enum.Enum):
    ALL = "all"
    RECOVERY = "recovery"


class ReceiverState(enum.Enum):
    IDLE = "idle"
    ANNOUNCED = "announced"
    COLLECTING = "collecting"
    COMPLETE = "complete"


class SymbolKind(enum.Enum):
    MESSAGE = "message"
    FRAME = "frame"


class FrameOutcome(enum.IntEnum):
    ACCEPTED = 0
    DUPLICATE = 1
    MISMATCH = 2
    INVALID_INDEX = 3
    MALFORMED = 4
    NOT_ANNOUNCED = 5
    ANNOUNCEMENT = 6
    IGNORED = 7


@dataclasses.dataclass(frozen=True)
class FileDescriptor:
    hash: str  # lowercase hex digest
    name: str
    size: int
    total_chunks: int
    index_bytes: int


@dataclasses.dataclass
class FileChunk:
    binary_data: bytes  # full wire frame, header included
    chunk_index: int
    file_name: str


@dataclasses.dataclass
class ChunkSet:
    file_hash: bytes
    descriptor: FileDescriptor
    chunk_size: int
    chunks: List[FileChunk]


@dataclasses.dataclass
class ChunkSizeAdjustment:
    adjusted_size: int
    was_adjusted: bool


@dataclasses.dataclass
class ScanningStats:
    total: int = 0  # frames that decoded against the active file
    count: int = 0  # unique frames accepted
    duplicates: int = 0
    errors: int = 0


@dataclasses.dataclass
class AssemblyResult:
    success: bool
    file_data: Optional[bytes] = None
    error: Optional[str] = None


def estimate_total_chunks(total_size: int, chunk_size: int) -> int:
    return (total_size + chunk_size - 1) // chunk_size


def safe_filename(name: str) -> str:
    """Strip directory components from an announced file name."""
    base = os.path.basename(name.replace("\\", "/"))
    if base in ("", ".", ".."):
        return "received.bin"
    return base
