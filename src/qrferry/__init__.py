"""Air-gapped file transfer over a sequence of QR codes."""

__all__ = [
    "config",
    "errors",
    "models",
    "indexing",
    "hashing",
    "frames",
    "chunker",
    "messages",
    "reassembler",
    "recovery",
    "qrencode",
    "scanner",
    "sender",
    "receiver",
    "cli",
]
