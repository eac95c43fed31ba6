"""Tests for the receiver driver, fed with synthetic scan batches."""

import pytest

from qrferry.chunker import split_bytes
from qrferry.errors import IntegrityError
from qrferry.frames import Frame
from qrferry.messages import FileInfoMessage, RecoveryMessage, parse_message
from qrferry.models import FileDescriptor
from qrferry.hashing import hex_to_bytes, hexdigest
from qrferry.reassembler import ReceiverSession
from qrferry.receiver import main, process_symbols, write_output


def _batches(chunk_set, indices):
    info = FileInfoMessage.from_chunk_set(chunk_set).to_json().encode()
    yield [info]
    for idx in indices:
        yield [chunk_set.chunks[idx].binary_data, info]


class TestProcessSymbols:
    def test_stops_when_complete(self, chunk_set):
        seen = []

        def batches():
            for batch in _batches(chunk_set, range(len(chunk_set.chunks))):
                seen.append(batch)
                yield batch
            yield [b"never consumed"]

        session = process_symbols(ReceiverSession(), batches())
        assert session.is_complete()
        assert len(seen) == len(chunk_set.chunks) + 1

    def test_partial(self, chunk_set):
        session = process_symbols(ReceiverSession(), _batches(chunk_set, [0, 0, 3]))
        assert not session.is_complete()
        assert session.find_missing() == [1, 2, 4, 5, 6, 7]
        assert session.assembly.stats.duplicates == 1


class TestWriteOutput:
    def test_default_name(self, chunk_set, payload, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        session = process_symbols(ReceiverSession(), _batches(chunk_set, range(8)))
        path = write_output(session, None)
        assert path == "payload.bin"
        assert (tmp_path / "payload.bin").read_bytes() == payload

    def test_explicit_path(self, chunk_set, payload, tmp_path):
        session = process_symbols(ReceiverSession(), _batches(chunk_set, range(8)))
        dest = tmp_path / "nested" / "copy.bin"
        write_output(session, str(dest))
        assert dest.read_bytes() == payload

    def test_announced_path_is_sanitised(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        chunk_set = split_bytes(b"secret", 4, "../../etc/passwd")
        session = process_symbols(ReceiverSession(), _batches(chunk_set, range(2)))
        assert write_output(session, None) == "passwd"

    def test_integrity_failure_writes_nothing(self, tmp_path):
        desc = FileDescriptor(hash=hexdigest(b"good"), name="x", size=4, total_chunks=1, index_bytes=1)
        session = ReceiverSession()
        session.announce(desc)
        session.assembly.add_chunk(Frame(index=0, payload=b"evil"))
        dest = tmp_path / "x.bin"
        with pytest.raises(IntegrityError):
            write_output(session, str(dest))
        assert not dest.exists()


def _feed(monkeypatch, batches):
    """Make ``main(["--frames", ...])`` read ``batches`` instead of image files."""
    batches = list(batches)
    monkeypatch.setattr("qrferry.receiver.iter_image_symbols", lambda directory: iter(batches))


class TestMain:
    def test_complete_transfer_written(self, chunk_set, payload, tmp_path, monkeypatch, capsys):
        _feed(monkeypatch, _batches(chunk_set, range(8)))
        dest = tmp_path / "restored.bin"
        main(["--frames", str(tmp_path), "--output", str(dest)])
        assert dest.read_bytes() == payload
        assert "file restored to" in capsys.readouterr().out

    def test_incomplete_prints_recovery_and_exits_2(self, chunk_set, tmp_path, monkeypatch, capsys):
        _feed(monkeypatch, _batches(chunk_set, [0, 2, 3, 4, 6]))
        qr_path = tmp_path / "recovery.png"
        dest = tmp_path / "restored.bin"
        with pytest.raises(SystemExit) as exc_info:
            main(["--frames", str(tmp_path), "--output", str(dest), "--recovery-output", str(qr_path)])
        assert exc_info.value.code == 2
        out = capsys.readouterr().out
        request_line = next(line for line in out.splitlines() if line.startswith("{"))
        assert parse_message(request_line) == RecoveryMessage(chunk_set.descriptor.hash, [1, 5, 7])
        assert "missing 3 chunks" in out
        assert qr_path.exists()
        assert not dest.exists()

    def test_integrity_failure_exits_with_message(self, tmp_path, monkeypatch):
        good_hash = hexdigest(b"good")
        info = FileInfoMessage(good_hash, "x.bin", 4, 1, 4).to_json().encode()
        forged = Frame(index=0, payload=b"evil").to_bytes(hex_to_bytes(good_hash), 1)
        _feed(monkeypatch, [[info], [forged]])
        dest = tmp_path / "x.bin"
        with pytest.raises(SystemExit) as exc_info:
            main(["--frames", str(tmp_path), "--output", str(dest)])
        assert "hash mismatch" in str(exc_info.value.code)
        assert "restart the transfer" in str(exc_info.value.code)
        assert not dest.exists()

    def test_no_file_info(self, chunk_set, tmp_path, monkeypatch):
        _feed(monkeypatch, [[chunk_set.chunks[0].binary_data], []])
        with pytest.raises(SystemExit) as exc_info:
            main(["--frames", str(tmp_path)])
        assert "No file info received" in str(exc_info.value.code)

    def test_missing_frames_directory(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main(["--frames", str(tmp_path / "absent")])
        assert exc_info.value.code == 2
