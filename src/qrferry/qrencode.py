from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence, Union

import cv2
import numpy as np
import segno

from . import config
from .messages import FileInfoMessage, RecoveryMessage
from .models import ErrorCorrectionLevel, FileChunk

Payload = Union[bytes, str]


def make_qr_array(
    payload: Payload,
    level: Union[ErrorCorrectionLevel, str] = config.DEFAULT_ERROR_LEVEL,
    scale: int = config.DEFAULT_SCALE,
    border: int = config.DEFAULT_BORDER,
    fg: int = config.DEFAULT_COLOR_FG,
    bg: int = config.DEFAULT_COLOR_BG,
) -> np.ndarray:
    error = ErrorCorrectionLevel(level).value.lower()
    mode = "byte" if isinstance(payload, (bytes, bytearray)) else None
    qr = segno.make(payload, error=error, mode=mode, micro=False, boost_error=False)
    matrix = np.array(qr.matrix, dtype=np.uint8)
    matrix = np.pad(matrix, border, constant_values=0)
    arr = np.repeat(np.repeat(matrix, scale, axis=0), scale, axis=1)
    arr = np.where(arr > 0, fg, bg).astype(np.uint8)
    return arr


def render_chunks(
    chunks: Sequence[FileChunk],
    level: Union[ErrorCorrectionLevel, str] = config.DEFAULT_ERROR_LEVEL,
    workers: int = config.DEFAULT_RENDER_WORKERS,
    scale: int = config.DEFAULT_SCALE,
) -> List[np.ndarray]:
    """Render every chunk as a QR image, in the order given."""
    if not chunks:
        return []
    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        return list(pool.map(lambda c: make_qr_array(c.binary_data, level, scale), chunks))


def render_file_info(message: FileInfoMessage, scale: int = config.DEFAULT_SCALE) -> np.ndarray:
    return make_qr_array(message.to_json(), config.INFO_ERROR_LEVEL, scale)


def render_recovery(message: RecoveryMessage, scale: int = config.DEFAULT_SCALE) -> np.ndarray:
    return make_qr_array(message.to_json(), config.INFO_ERROR_LEVEL, scale)


def compose_grid(
    qr_arrays: List[np.ndarray],
    rows: int,
    cols: int,
    gap: int = config.DEFAULT_GAP,
    bg: int = config.DEFAULT_COLOR_BG,
) -> np.ndarray:
    """Tile QR images into one canvas; smaller codes are centred in their cell."""
    total_cells = rows * cols
    qr_arrays = qr_arrays[:total_cells]
    h = max(a.shape[0] for a in qr_arrays)
    w = max(a.shape[1] for a in qr_arrays)
    canvas_h = rows * h + (rows - 1) * gap
    canvas_w = cols * w + (cols - 1) * gap
    canvas = np.full((canvas_h, canvas_w), bg, dtype=np.uint8)

    for idx, arr in enumerate(qr_arrays):
        r, c = divmod(idx, cols)
        ah, aw = arr.shape[:2]
        y = r * (h + gap) + (h - ah) // 2
        x = c * (w + gap) + (w - aw) // 2
        canvas[y : y + ah, x : x + aw] = arr
    return canvas


def overlay_text(
    image: np.ndarray,
    text: str,
    pos: tuple[int, int] = (10, 30),
    color: int = 128,
    scale: float = 0.7,
    thickness: int = 2,
) -> np.ndarray:
    """Overlay small status text on the composed image."""
    img = image.copy()
    cv2.putText(
        img,
        text,
        pos,
        cv2.FONT_HERSHEY_SIMPLEX,
        scale,
        int(color),
        thickness,
        lineType=cv2.LINE_AA,
    )
    return img


def save_png(image: np.ndarray, path: str) -> None:
    if not cv2.imwrite(path, image):
        raise OSError(f"could not write {path}")
