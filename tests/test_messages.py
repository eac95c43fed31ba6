"""Unit tests for the JSON control messages."""

import json

import pytest

from qrferry.errors import MessageError
from qrferry.hashing import hexdigest
from qrferry.messages import (
    FileInfoMessage,
    RecoveryMessage,
    classify_symbol,
    looks_like_json,
    parse_message,
)
from qrferry.models import SymbolKind

HASH = hexdigest(b"some file")


class TestFileInfoMessage:
    def test_wire_shape(self, chunk_set):
        message = FileInfoMessage.from_chunk_set(chunk_set)
        assert json.loads(message.to_json()) == {
            "type": "fileInfo",
            "fileHash": chunk_set.descriptor.hash,
            "fileName": "payload.bin",
            "fileSize": chunk_set.descriptor.size,
            "totalChunks": chunk_set.descriptor.total_chunks,
            "chunkSize": 100,
        }

    def test_descriptor_rebuilt_on_receiver(self, chunk_set):
        message = parse_message(FileInfoMessage.from_chunk_set(chunk_set).to_json())
        assert isinstance(message, FileInfoMessage)
        assert message.to_descriptor() == chunk_set.descriptor

    def test_uppercase_hash_normalised(self):
        message = FileInfoMessage.from_dict(
            {
                "type": "fileInfo",
                "fileHash": HASH.upper(),
                "fileName": "a",
                "fileSize": 1,
                "totalChunks": 1,
                "chunkSize": 1,
            }
        )
        assert message.file_hash == HASH

    @pytest.mark.parametrize(
        "override",
        [
            {"fileHash": "zz"},
            {"fileHash": "abcd"},
            {"fileSize": "10"},
            {"totalChunks": -1},
            {"chunkSize": True},
            {"fileName": None},
        ],
    )
    def test_invalid_fields(self, override):
        data = {
            "type": "fileInfo",
            "fileHash": HASH,
            "fileName": "a",
            "fileSize": 10,
            "totalChunks": 1,
            "chunkSize": 10,
        }
        data.update(override)
        with pytest.raises(MessageError):
            FileInfoMessage.from_dict(data)

    @pytest.mark.parametrize(
        "size, total, chunk",
        [
            (10, 10**12, 1),
            (1000, 3, 100),
            (10, 0, 10),
            (0, 1, 10),
            (10, 1, 0),
            (10**9, 10**9, 1),
            (5000, 1, 5000),
        ],
    )
    def test_inconsistent_layout_rejected(self, size, total, chunk):
        data = {
            "type": "fileInfo",
            "fileHash": HASH,
            "fileName": "a",
            "fileSize": size,
            "totalChunks": total,
            "chunkSize": chunk,
        }
        with pytest.raises(MessageError):
            FileInfoMessage.from_dict(data)

    def test_empty_file_announcement(self):
        message = FileInfoMessage.from_dict(
            {
                "type": "fileInfo",
                "fileHash": HASH,
                "fileName": "empty",
                "fileSize": 0,
                "totalChunks": 0,
                "chunkSize": 10,
            }
        )
        assert message.to_descriptor().total_chunks == 0


class TestRecoveryMessage:
    def test_round_trip(self):
        message = RecoveryMessage(HASH, [1, 3, 5, 7, 9])
        parsed = parse_message(message.to_json())
        assert parsed == message
        assert parsed.missing_chunks == (1, 3, 5, 7, 9)

    def test_wire_shape(self):
        assert json.loads(RecoveryMessage(HASH, [2]).to_json()) == {
            "type": "recovery",
            "fileHash": HASH,
            "missingChunks": [2],
        }

    def test_empty_list_is_valid(self):
        parsed = RecoveryMessage.from_dict({"type": "recovery", "fileHash": HASH, "missingChunks": []})
        assert parsed.missing_chunks == ()

    @pytest.mark.parametrize(
        "data",
        [
            {"type": "recover", "fileHash": HASH, "missingChunks": []},
            {"type": "recovery", "fileHash": 12, "missingChunks": []},
            {"type": "recovery", "fileHash": HASH, "missingChunks": "1,2"},
            {"type": "recovery", "fileHash": HASH},
            {"type": "recovery", "fileHash": HASH, "missingChunks": ["1"]},
        ],
    )
    def test_invalid(self, data):
        with pytest.raises(MessageError):
            RecoveryMessage.from_dict(data)


class TestParseMessage:
    def test_accepts_bytes(self):
        raw = RecoveryMessage(HASH, [0]).to_json().encode()
        assert isinstance(parse_message(raw), RecoveryMessage)

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", '{"type": "other"}', '{"no": "type"}', b"{\xff"])
    def test_rejects(self, raw):
        with pytest.raises(MessageError):
            parse_message(raw)

    def test_looks_like_json(self):
        assert looks_like_json(b'{"type":"x"}')
        assert looks_like_json("{")
        assert not looks_like_json(b"\x00{")
        assert not looks_like_json(b"")


class TestClassifySymbol:
    def test_json_is_message(self):
        assert classify_symbol(RecoveryMessage(HASH, [0]).to_json().encode()) is SymbolKind.MESSAGE

    def test_binary_is_frame(self):
        assert classify_symbol(b"\x00\x01payload") is SymbolKind.FRAME

    def test_active_hash_wins_over_brace(self):
        file_hash = b"{" + bytes(19)
        data = file_hash + b"\x00rest"
        assert classify_symbol(data) is SymbolKind.MESSAGE
        assert classify_symbol(data, file_hash) is SymbolKind.FRAME
