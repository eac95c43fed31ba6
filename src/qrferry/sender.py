from __future__ import annotations

import argparse
import logging
import os
from typing import Iterable, Iterator, List, Optional, Sequence

import cv2
import numpy as np

from . import config
from .chunker import split_file_into_chunks, validate_chunk_size
from .errors import MessageError, TransferError
from .logging_config import setup_logging
from .messages import FileInfoMessage, RecoveryMessage, parse_message
from .models import ChunkSet, ErrorCorrectionLevel, FileChunk, TransmissionMode
from .qrencode import compose_grid, overlay_text, render_chunks, render_file_info, save_png
from .recovery import select_frames_to_resend
from .scanner import decode_symbols

logger = logging.getLogger(__name__)

WINDOW_NAME = "QR Sender"


class SenderSession:
    """Chunks of one file plus the sender's current transmission mode."""

    def __init__(self, chunk_set: ChunkSet) -> None:
        self.chunk_set = chunk_set
        self.mode = TransmissionMode.ALL
        self.missing_chunks: List[int] = []

    @property
    def file_info(self) -> FileInfoMessage:
        return FileInfoMessage.from_chunk_set(self.chunk_set)

    def apply_recovery(self, message: RecoveryMessage) -> None:
        if message.file_hash.lower() != self.chunk_set.descriptor.hash:
            raise MessageError(
                f"recovery request is for {message.file_hash}, "
                f"not {self.chunk_set.descriptor.hash}"
            )
        self.missing_chunks = list(message.missing_chunks)
        self.mode = TransmissionMode.RECOVERY
        logger.info("recovery requested for %d chunks", len(self.missing_chunks))

    def send_all(self) -> None:
        self.mode = TransmissionMode.ALL
        self.missing_chunks = []

    def frames_to_transmit(self) -> List[FileChunk]:
        return select_frames_to_resend(self.chunk_set.chunks, self.missing_chunks, self.mode)


def _batched(seq: Iterable[np.ndarray], n: int) -> Iterator[List[np.ndarray]]:
    batch: List[np.ndarray] = []
    for item in seq:
        batch.append(item)
        if len(batch) == n:
            yield batch
            batch = []
    if batch:
        yield batch


def load_recovery(value: str) -> RecoveryMessage:
    """Read a recovery request given as JSON text, ``@file.json`` or a QR image path."""
    if value.startswith("@"):
        with open(value[1:], "r", encoding="utf-8") as f:
            text = f.read()
    elif os.path.splitext(value)[1].lower() in (".png", ".jpg", ".jpeg", ".bmp"):
        image = cv2.imread(value, cv2.IMREAD_GRAYSCALE)
        if image is None:
            raise OSError(f"could not read {value}")
        symbols = decode_symbols(image)
        if not symbols:
            raise MessageError(f"no QR code found in {value}")
        text = symbols[0].decode("utf-8", errors="replace")
    else:
        text = value
    message = parse_message(text.strip())
    if not isinstance(message, RecoveryMessage):
        raise MessageError(f"expected a recovery message, got {message.type}")
    return message


def build_chunk_screens(
    session: SenderSession,
    level: str,
    rows: int,
    cols: int,
    workers: int = config.DEFAULT_RENDER_WORKERS,
    status_text: bool = True,
) -> List[np.ndarray]:
    """Render the chunks to transmit as grid screens, in index order."""
    chunks = session.frames_to_transmit()
    qr_arrays = render_chunks(chunks, level, workers)
    grid_cells = rows * cols
    screens = []
    for batch_idx, batch in enumerate(_batched(qr_arrays, grid_cells)):
        screen = compose_grid(batch, rows, cols)
        if status_text:
            # text goes in a blank strip so it never covers modules
            screen = np.pad(screen, ((40, 0), (0, 0)), constant_values=config.DEFAULT_COLOR_BG)
            first = chunks[batch_idx * grid_cells].chunk_index
            screen = overlay_text(screen, f"chunk {first + 1}/{session.chunk_set.descriptor.total_chunks}")
        screens.append(screen)
    return screens


def build_display_frames(
    session: SenderSession,
    level: str,
    rows: int,
    cols: int,
    info_repeat: int = config.DEFAULT_INFO_REPEAT,
    workers: int = config.DEFAULT_RENDER_WORKERS,
    status_text: bool = True,
    chunk_screens: Optional[List[np.ndarray]] = None,
) -> List[np.ndarray]:
    """Compose the screens of one display cycle: announcement first, then chunks."""
    if chunk_screens is None:
        chunk_screens = build_chunk_screens(session, level, rows, cols, workers, status_text)
    info_img = render_file_info(session.file_info)
    return [info_img for _ in range(max(1, info_repeat))] + list(chunk_screens)


def write_images(session: SenderSession, chunk_screens: Sequence[np.ndarray], out_dir: str) -> None:
    """Write the announcement once as file_info.png, then one PNG per chunk screen."""
    os.makedirs(out_dir, exist_ok=True)
    save_png(render_file_info(session.file_info), os.path.join(out_dir, "file_info.png"))
    for idx, screen in enumerate(chunk_screens):
        save_png(screen, os.path.join(out_dir, f"frame_{idx:05d}.png"))


def _pad_to(image: np.ndarray, h: int, w: int) -> np.ndarray:
    out = np.full((h, w), config.DEFAULT_COLOR_BG, dtype=np.uint8)
    out[: image.shape[0], : image.shape[1]] = image
    return out


def write_video(screens: Sequence[np.ndarray], path: str, fps: int) -> None:
    h = max(s.shape[0] for s in screens)
    w = max(s.shape[1] for s in screens)
    fourcc = cv2.VideoWriter_fourcc(*"mp4v")
    writer = cv2.VideoWriter(path, fourcc, fps, (w, h), isColor=False)
    try:
        for screen in screens:
            writer.write(_pad_to(screen, h, w))
    finally:
        writer.release()


def play_screens(screens: Sequence[np.ndarray], fps: int, loops: int = 0) -> None:
    """Cycle through ``screens`` until q/ESC, or ``loops`` times when > 0."""
    delay_ms = int(1000 / max(1, fps))
    cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)
    try:
        cycle = 0
        while loops <= 0 or cycle < loops:
            for screen in screens:
                cv2.imshow(WINDOW_NAME, screen)
                key = cv2.waitKey(delay_ms) & 0xFF
                if key in (ord("q"), 27):
                    return
            cycle += 1
    finally:
        cv2.destroyAllWindows()


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="QR file sender")
    parser.add_argument("input", help="File to send")
    parser.add_argument("--chunk-size", type=int, default=config.DEFAULT_CHUNK_SIZE)
    parser.add_argument(
        "--error-level",
        choices=[lvl.value for lvl in ErrorCorrectionLevel],
        default=config.DEFAULT_ERROR_LEVEL,
    )
    parser.add_argument("--grid-rows", type=int, default=config.DEFAULT_GRID_ROWS)
    parser.add_argument("--grid-cols", type=int, default=config.DEFAULT_GRID_COLS)
    parser.add_argument("--fps", type=int, default=config.DEFAULT_FPS)
    parser.add_argument("--info-repeat", type=int, default=config.DEFAULT_INFO_REPEAT)
    parser.add_argument("--workers", type=int, default=config.DEFAULT_RENDER_WORKERS)
    parser.add_argument("--loops", type=int, default=0, help="Display cycles; 0 repeats until q/ESC")
    parser.add_argument(
        "--recovery",
        help="Recovery request from the receiver: JSON text, @file.json or a QR image",
    )
    parser.add_argument("--output-dir", help="Write QR screens as PNG files to this directory")
    parser.add_argument("--no-display", action="store_true", help="Do not open window")
    parser.add_argument("--video-output", help="Optional path to save MP4 of the QR stream")
    parser.add_argument("--log-level", default=None)
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    setup_logging("qrferry", args.log_level)

    if args.chunk_size <= 0:
        parser.error("chunk-size must be > 0")
    if args.grid_rows <= 0 or args.grid_cols <= 0:
        parser.error("grid size must be > 0")
    if args.no_display and not (args.video_output or args.output_dir):
        parser.error("When --no-display is set you must provide --video-output or --output-dir.")

    sizing = validate_chunk_size(args.chunk_size, args.error_level)
    if sizing.was_adjusted:
        print(
            f"[send] chunk size {args.chunk_size} too large for level {args.error_level}; "
            f"using {sizing.adjusted_size}"
        )

    try:
        chunk_set = split_file_into_chunks(args.input, sizing.adjusted_size)
    except OSError as exc:
        parser.error(f"cannot read {args.input}: {exc}")
    except TransferError as exc:
        parser.error(str(exc))

    session = SenderSession(chunk_set)
    if args.recovery:
        try:
            session.apply_recovery(load_recovery(args.recovery))
        except (OSError, MessageError) as exc:
            parser.error(f"invalid recovery request: {exc}")

    desc = chunk_set.descriptor
    print(
        f"[send] file={desc.name} hash={desc.hash} bytes={desc.size} chunks={desc.total_chunks} "
        f"chunk_size={chunk_set.chunk_size} level={args.error_level} mode={session.mode.value} "
        f"sending={len(session.frames_to_transmit())}"
    )

    chunk_screens = build_chunk_screens(
        session,
        level=args.error_level,
        rows=args.grid_rows,
        cols=args.grid_cols,
        workers=args.workers,
    )
    screens = build_display_frames(
        session,
        level=args.error_level,
        rows=args.grid_rows,
        cols=args.grid_cols,
        info_repeat=args.info_repeat,
        chunk_screens=chunk_screens,
    )
    if args.output_dir:
        write_images(session, chunk_screens, args.output_dir)
        print(f"[send] wrote {len(chunk_screens) + 1} images to {args.output_dir}")
    if args.video_output:
        write_video(screens, args.video_output, args.fps)
        print(f"[send] writing video to {args.video_output}")
    if not args.no_display:
        play_screens(screens, args.fps, args.loops)


if __name__ == "__main__":
    main()
