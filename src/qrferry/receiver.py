from __future__ import annotations

import argparse
import logging
import os
import time
from pathlib import Path
from typing import Iterable, List, Optional

import cv2

from .errors import IntegrityError
from .logging_config import setup_logging
from .models import safe_filename
from .qrencode import render_recovery, save_png
from .reassembler import ReceiverSession
from .recovery import build_recovery_request
from .scanner import iter_capture_symbols, iter_image_symbols

logger = logging.getLogger(__name__)


def process_symbols(
    session: ReceiverSession,
    batches: Iterable[List[bytes]],
    report_interval: float = 1.0,
) -> ReceiverSession:
    """Feed scanned symbols into ``session`` until the file is complete or input ends."""
    last_report = time.time()
    for symbols in batches:
        for data in symbols:
            session.ingest(data)
        now = time.time()
        if now - last_report > report_interval:
            print(f"[receive] {session.progress()}")
            last_report = now
        if session.is_complete():
            break
    return session


def write_output(session: ReceiverSession, output: Optional[str]) -> str:
    """Assemble and write the received file; returns its path."""
    data = session.assemble()
    dest = Path(output or safe_filename(session.descriptor.name))
    dest.parent.mkdir(parents=True, exist_ok=True)
    with open(dest, "wb") as f:
        f.write(data)
    return str(dest)


def show_image(image, title: str = "QR Recovery") -> None:
    cv2.imshow(title, image)
    cv2.waitKey(0)
    cv2.destroyAllWindows()


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="QR file receiver")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--input", help="Video file path; omit to use camera", default=None)
    source.add_argument("--frames", help="Directory of captured QR images")
    parser.add_argument("--output", help="Output file; defaults to the announced name")
    parser.add_argument("--recovery-output", help="Write the recovery QR to this PNG if chunks are missing")
    parser.add_argument("--show-recovery", action="store_true", help="Display the recovery QR in a window")
    parser.add_argument("--log-level", default=None)
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    setup_logging("qrferry", args.log_level)

    if args.frames:
        if not os.path.isdir(args.frames):
            parser.error(f"frames directory not found: {args.frames}")
        batches = iter_image_symbols(args.frames)
    else:
        batches = iter_capture_symbols(args.input)

    session = process_symbols(ReceiverSession(), batches)
    if session.descriptor is None:
        raise SystemExit("No file info received; cannot assemble file.")
    print(f"[receive] {session.progress()}")

    if session.is_complete():
        try:
            final_path = write_output(session, args.output)
        except IntegrityError as exc:
            raise SystemExit(f"[receive] {exc}; restart the transfer") from exc
        print(f"[receive] file restored to {final_path}")
        return

    request = build_recovery_request(session)
    print(f"[receive] missing {len(request.missing_chunks)} chunks; recovery request:")
    print(request.to_json())
    image = render_recovery(request)
    if args.recovery_output:
        save_png(image, args.recovery_output)
        print(f"[receive] recovery QR written to {args.recovery_output}")
    if args.show_recovery:
        show_image(image)
    raise SystemExit(2)


if __name__ == "__main__":
    main()
