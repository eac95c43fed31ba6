"""Shared pytest fixtures for all tests."""

import logging

import pytest

from qrferry.chunker import split_bytes
from qrferry.messages import FileInfoMessage
from qrferry.reassembler import ReceiverSession


@pytest.fixture
def payload():
    return bytes(range(256)) * 3 + b"tail"


@pytest.fixture
def chunk_set(payload):
    return split_bytes(payload, 100, "payload.bin")


@pytest.fixture
def sample_file(tmp_path, payload):
    path = tmp_path / "payload.bin"
    path.write_bytes(payload)
    return path


@pytest.fixture
def announced_session(chunk_set):
    """Receiver session that has seen the file info for ``chunk_set``."""
    session = ReceiverSession()
    session.ingest(FileInfoMessage.from_chunk_set(chunk_set).to_json())
    return session


@pytest.fixture(autouse=True)
def reset_package_logger():
    """CLI entry points attach a stdout handler; drop it between tests."""
    yield
    logger = logging.getLogger("qrferry")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
