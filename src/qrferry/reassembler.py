from __future__ import annotations

import logging
from typing import List, Optional, Union

from .errors import (
    CapacityExceeded,
    FrameError,
    FrameMismatch,
    IntegrityError,
    InvalidIndex,
    MessageError,
    MissingChunkError,
    NotAnnounced,
)
from .frames import Frame
from .hashing import hex_to_bytes, hexdigest
from .messages import FileInfoMessage, classify_symbol, parse_message
from .models import (
    AssemblyResult,
    FileDescriptor,
    FrameOutcome,
    ReceiverState,
    ScanningStats,
    SymbolKind,
)

logger = logging.getLogger(__name__)


class AssemblyState:
    """Slots for one file being received, indexed by chunk index."""

    def __init__(self, descriptor: FileDescriptor) -> None:
        self.descriptor = descriptor
        self.slots: List[Optional[bytes]] = [None] * descriptor.total_chunks
        self.stats = ScanningStats()

    def has_chunk(self, index: int) -> bool:
        return 0 <= index < len(self.slots) and self.slots[index] is not None

    def is_info_equal(self, descriptor: FileDescriptor) -> bool:
        return self.descriptor == descriptor

    def add_chunk(self, frame: Frame) -> FrameOutcome:
        """Store ``frame`` unless its slot is already filled.

        A filled slot is never overwritten; repeats only bump the duplicate
        counter.
        """
        if not 0 <= frame.index < self.descriptor.total_chunks:
            raise InvalidIndex(frame.index, self.descriptor.total_chunks)
        if self.slots[frame.index] is not None:
            self.stats.duplicates += 1
            return FrameOutcome.DUPLICATE
        self.slots[frame.index] = bytes(frame.payload)
        self.stats.count += 1
        logger.debug(
            "add chunk %d/%d (%d bytes)",
            frame.index + 1,
            self.descriptor.total_chunks,
            len(frame.payload),
        )
        return FrameOutcome.ACCEPTED

    def record_error(self) -> None:
        self.stats.errors += 1

    def is_complete(self) -> bool:
        return self.stats.count == self.descriptor.total_chunks

    def progress_percent(self) -> float:
        if self.descriptor.total_chunks == 0:
            return 100.0
        return self.stats.count / self.descriptor.total_chunks * 100

    def find_missing(self) -> List[int]:
        return [idx for idx, slot in enumerate(self.slots) if slot is None]

    def assemble(self) -> bytes:
        """Concatenate all slots and check the result against the file hash.

        Raises MissingChunkError if a slot is empty and IntegrityError if the
        recomputed hash differs; the assembled bytes are not returned then.
        """
        parts: List[bytes] = []
        for idx, slot in enumerate(self.slots):
            if slot is None:
                raise MissingChunkError(idx)
            parts.append(slot)
        data = b"".join(parts)
        got = hexdigest(data)
        if got != self.descriptor.hash:
            raise IntegrityError(self.descriptor.hash, got)
        return data

    def assemble_file(self) -> AssemblyResult:
        try:
            data = self.assemble()
        except MissingChunkError as exc:
            return AssemblyResult(success=False, error=f"Missing chunk: {exc.index}")
        except IntegrityError as exc:
            return AssemblyResult(
                success=False,
                error=f"Hash mismatch. Expected: {exc.expected}, Got: {exc.got}",
            )
        return AssemblyResult(success=True, file_data=data)


class ReceiverSession:
    """Receiving side of one transfer at a time.

    Scanned symbols are fed through ``ingest``. A file-info announcement
    creates the assembly state; binary frames are then decoded against it.
    Announcing a different file discards the current state.
    """

    def __init__(self) -> None:
        self.assembly: Optional[AssemblyState] = None
        self._state = ReceiverState.IDLE
        self._hash_bytes = b""
        self.rejected_before_announce = 0

    @property
    def state(self) -> ReceiverState:
        return self._state

    @property
    def descriptor(self) -> Optional[FileDescriptor]:
        return self.assembly.descriptor if self.assembly else None

    def reset(self) -> None:
        self.assembly = None
        self._state = ReceiverState.IDLE
        self._hash_bytes = b""
        self.rejected_before_announce = 0

    def announce(self, descriptor: FileDescriptor) -> bool:
        """Start collecting ``descriptor``. Returns False if it is already active."""
        if self.assembly is not None and self.assembly.is_info_equal(descriptor):
            return False
        if self.assembly is not None:
            logger.info("new file announced, discarding %s", self.assembly.descriptor.name)
        self.assembly = AssemblyState(descriptor)
        self._hash_bytes = hex_to_bytes(descriptor.hash)
        self._state = ReceiverState.ANNOUNCED
        logger.info(
            "receiving %s (%d bytes, %d chunks)",
            descriptor.name,
            descriptor.size,
            descriptor.total_chunks,
        )
        if descriptor.total_chunks == 0:
            self._state = ReceiverState.COMPLETE
        return True

    def add_frame_bytes(self, data: bytes) -> FrameOutcome:
        """Decode one binary frame and store it.

        Per-frame errors are counted and reported through the outcome; they
        never end the session.
        """
        if self.assembly is None:
            self.rejected_before_announce += 1
            logger.warning("frame received before file info; dropped")
            return FrameOutcome.NOT_ANNOUNCED
        assembly = self.assembly
        try:
            frame = Frame.from_bytes(data, assembly.descriptor)
        except FrameMismatch as exc:
            assembly.record_error()
            logger.warning("%s; dropped", exc)
            return FrameOutcome.MISMATCH
        except InvalidIndex as exc:
            assembly.record_error()
            logger.warning("%s; dropped", exc)
            return FrameOutcome.INVALID_INDEX
        except FrameError as exc:
            assembly.record_error()
            logger.warning("malformed frame: %s", exc)
            return FrameOutcome.MALFORMED

        assembly.stats.total += 1
        outcome = assembly.add_chunk(frame)
        if self._state is ReceiverState.ANNOUNCED:
            self._state = ReceiverState.COLLECTING
        if assembly.is_complete():
            self._state = ReceiverState.COMPLETE
        return outcome

    def ingest(self, data: Union[bytes, str]) -> FrameOutcome:
        """Route one scanned symbol to the announcement or frame path."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        if classify_symbol(data, self._hash_bytes) is SymbolKind.MESSAGE:
            try:
                message = parse_message(data)
            except MessageError as exc:
                # a binary frame may start with "{" too
                logger.debug("not a control message: %s", exc)
            else:
                if isinstance(message, FileInfoMessage):
                    return self.announce_message(message)
                logger.debug("ignoring %s message on receiver", message.type)
                return FrameOutcome.IGNORED
        return self.add_frame_bytes(data)

    def announce_message(self, message: FileInfoMessage) -> FrameOutcome:
        """Announce the file a parsed file-info message describes."""
        try:
            self.announce(message.to_descriptor())
        except CapacityExceeded as exc:
            logger.warning("unusable file info for %s: %s", message.file_name, exc)
            return FrameOutcome.MALFORMED
        return FrameOutcome.ANNOUNCEMENT

    def _require_assembly(self) -> AssemblyState:
        if self.assembly is None:
            raise NotAnnounced("no file info received yet")
        return self.assembly

    def find_missing(self) -> List[int]:
        return self._require_assembly().find_missing()

    def is_complete(self) -> bool:
        return self._state is ReceiverState.COMPLETE

    def assemble(self) -> bytes:
        assembly = self._require_assembly()
        try:
            data = assembly.assemble()
        except IntegrityError as exc:
            logger.error("integrity check failed for %s: %s", assembly.descriptor.name, exc)
            raise
        logger.info("assembled %s (%d bytes)", assembly.descriptor.name, len(data))
        return data

    def progress(self) -> str:
        if self.assembly is None:
            return "waiting for file info"
        stats = self.assembly.stats
        return (
            f"{stats.count}/{self.assembly.descriptor.total_chunks} chunks "
            f"({self.assembly.progress_percent():.1f}%) "
            f"dup={stats.duplicates} err={stats.errors}"
        )
