from __future__ import annotations


class TransferError(Exception):
    """Base class for every failure raised by the transfer core."""


class CapacityExceeded(TransferError):
    pass


class FrameError(TransferError):
    """A scanned frame could not be decoded."""


class FrameMismatch(FrameError):
    def __init__(self, got: str, expected: str) -> None:
        super().__init__(f"frame hash {got} does not match file hash {expected}")
        self.got = got
        self.expected = expected


class InvalidIndex(FrameError):
    def __init__(self, index: int, total_chunks: int) -> None:
        super().__init__(f"invalid chunk index {index} (total {total_chunks})")
        self.index = index
        self.total_chunks = total_chunks


class NotAnnounced(TransferError):
    """No file-info announcement has been received yet."""


class IntegrityError(TransferError):
    def __init__(self, expected: str, got: str) -> None:
        super().__init__(f"hash mismatch; expected {expected}, got {got}")
        self.expected = expected
        self.got = got


class MissingChunkError(TransferError):
    def __init__(self, index: int) -> None:
        super().__init__(f"missing chunk {index}")
        self.index = index


class MessageError(TransferError):
    """A JSON control message is malformed or of an unknown type."""
