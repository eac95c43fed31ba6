from __future__ import annotations

import hashlib

from . import config


def digest(data: bytes) -> bytes:
    return hashlib.sha1(data).digest()


def hexdigest(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def file_digest(path: str) -> bytes:
    h = hashlib.sha1()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(config.READ_BUF), b""):
            h.update(chunk)
    return h.digest()


def bytes_to_hex(data: bytes) -> str:
    return data.hex()


def hex_to_bytes(value: str) -> bytes:
    return bytes.fromhex(value)
