from __future__ import annotations

import logging
from typing import List, Sequence, TypeVar, Union

from .messages import RecoveryMessage
from .models import TransmissionMode
from .reassembler import AssemblyState, ReceiverSession

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_recovery_request(source: Union[AssemblyState, ReceiverSession]) -> RecoveryMessage:
    """Snapshot the missing chunk list of a transfer in progress."""
    # a session with no announcement raises NotAnnounced here
    missing = source.find_missing()
    return RecoveryMessage(file_hash=source.descriptor.hash, missing_chunks=missing)


def select_frames_to_resend(
    all_frames: Sequence[T],
    missing_indices: Sequence[int],
    mode: Union[TransmissionMode, str] = TransmissionMode.RECOVERY,
) -> List[T]:
    """Pick the frames a sender should display next.

    In recovery mode with a non-empty list only the listed frames are
    returned; indices outside ``all_frames`` are skipped. Otherwise every
    frame is returned.
    """
    if TransmissionMode(mode) is TransmissionMode.RECOVERY and missing_indices:
        selected: List[T] = []
        for idx in missing_indices:
            if 0 <= idx < len(all_frames):
                selected.append(all_frames[idx])
            else:
                logger.warning("recovery index %d out of range; skipped", idx)
        return selected
    return list(all_frames)
