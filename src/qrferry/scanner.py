from __future__ import annotations

import glob
import json
import logging
import os
from typing import Iterator, List, Optional

import cv2
import numpy as np

from .messages import looks_like_json

logger = logging.getLogger(__name__)

IMAGE_PATTERNS = ("*.png", "*.jpg", "*.jpeg", "*.bmp")


def restore_payload(data: bytes) -> bytes:
    """Undo zbar's text conversion of a byte-mode symbol.

    zbar hands back byte-mode data that is not valid UTF-8 as ISO-8859-1
    re-encoded to UTF-8. JSON messages are UTF-8 text and pass unchanged.
    """
    if looks_like_json(data):
        try:
            if isinstance(json.loads(data.decode("utf-8")), dict):
                return data
        except ValueError:
            pass
    try:
        return data.decode("utf-8").encode("latin-1")
    except (UnicodeDecodeError, UnicodeEncodeError):
        return data


def decode_symbols(image: np.ndarray) -> List[bytes]:
    """Return the payload of every QR code visible in ``image``."""
    from pyzbar.pyzbar import ZBarSymbol, decode

    if image.ndim == 3:
        image = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    return [restore_payload(obj.data) for obj in decode(image, symbols=[ZBarSymbol.QRCODE]) if obj.data]


def iter_capture_symbols(source: Optional[str] = None) -> Iterator[List[bytes]]:
    """Yield the symbols decoded from each frame of a video file or the camera."""
    cap = cv2.VideoCapture(0 if source is None else source)
    if not cap.isOpened():
        raise RuntimeError(f"Unable to open {'camera' if source is None else source}")
    try:
        while True:
            ret, frame = cap.read()
            if not ret:
                break
            yield decode_symbols(frame)
    finally:
        cap.release()


def iter_image_symbols(directory: str) -> Iterator[List[bytes]]:
    """Yield the symbols decoded from each still image in ``directory``."""
    paths: List[str] = []
    for pattern in IMAGE_PATTERNS:
        paths.extend(glob.glob(os.path.join(directory, pattern)))
    for path in sorted(paths):
        image = cv2.imread(path, cv2.IMREAD_GRAYSCALE)
        if image is None:
            logger.warning("could not read image %s", path)
            continue
        yield decode_symbols(image)
