"""Tests for the durable write pipeline."""

from __future__ import annotations

import io
import os

import pytest

pytestmark = [pytest.mark.unit, pytest.mark.disk]

from drivestress.models import Stage
from drivestress.storage.payload import PayloadGenerator
from drivestress.storage.writer import sync_file_to_disk, write_payload
from drivestress.utils.exceptions import SyncError
from tests.conftest import make_spec


def _expected_bytes(seed: int, size: int, chunk_size: int) -> bytes:
    return b"".join(data for _, data in PayloadGenerator(seed).chunks(size, chunk_size))


class TestWritePayload:
    """write_payload end to end against a real temporary directory."""

    @pytest.mark.parametrize("size", [1, 1023, 1024, 1025, 4096 + 17])
    def test_writes_exact_payload(self, tmp_path, size):
        spec = make_spec(tmp_path / "f.dat", size=size)

        result = write_payload(spec)

        assert result.success is True
        assert result.stage is Stage.SYNC
        assert result.bytes_written == size
        assert result.error is None
        assert result.sync_error is None
        assert (tmp_path / "f.dat").read_bytes() == _expected_bytes(spec.seed, size, 1024)

    def test_zero_size_creates_empty_file(self, tmp_path):
        spec = make_spec(tmp_path / "empty.dat", size=0)

        result = write_payload(spec)

        assert result.success is True
        assert (tmp_path / "empty.dat").stat().st_size == 0

    def test_truncates_existing_file(self, tmp_path):
        target = tmp_path / "f.dat"
        target.write_bytes(b"x" * 10_000)

        write_payload(make_spec(target, size=100))

        assert target.stat().st_size == 100

    def test_result_carries_spec_identity(self, tmp_path):
        spec = make_spec(tmp_path / "w3.dat", seed=777, worker_index=3)

        result = write_payload(spec)

        assert result.seed == 777
        assert result.worker_index == 3
        assert result.path == spec.path

    def test_open_failure(self, tmp_path):
        spec = make_spec(tmp_path / "missing" / "f.dat")

        result = write_payload(spec)

        assert result.success is False
        assert result.stage is Stage.WRITE
        assert result.bytes_written == 0
        assert "Error opening" in result.error

    def test_sync_failure_is_recorded_not_fatal(self, tmp_path, monkeypatch):
        def failing_fsync(fd):
            raise OSError(5, "Input/output error")

        monkeypatch.setattr("drivestress.storage.writer.os.fsync", failing_fsync)
        spec = make_spec(tmp_path / "f.dat")

        result = write_payload(spec)

        assert result.success is True
        assert result.stage is Stage.SYNC
        assert "fsync" in result.sync_error
        assert (tmp_path / "f.dat").stat().st_size == spec.size

    def test_write_failure_still_runs_barrier(self, tmp_path, monkeypatch):
        synced = []
        real_open = open

        class FailingWriter(io.BufferedWriter):
            calls = 0

            def write(self, data):
                FailingWriter.calls += 1
                if FailingWriter.calls == 2:
                    raise OSError(28, "No space left on device")
                return super().write(data)

        def fake_open(path, mode="r", *args, **kwargs):
            raw = real_open(path, mode, *args, buffering=0, **kwargs)
            return FailingWriter(raw)

        def recording_sync(handle, path):
            synced.append(path)

        monkeypatch.setattr("drivestress.storage.writer.open", fake_open, raising=False)
        monkeypatch.setattr("drivestress.storage.writer.sync_file_to_disk", recording_sync)
        spec = make_spec(tmp_path / "f.dat", size=4096, chunk_size=1024)

        result = write_payload(spec)

        assert result.success is False
        assert result.stage is Stage.WRITE
        assert result.bytes_written == 1024
        assert "No space left" in result.error
        assert synced == [spec.path]


class TestSyncFileToDisk:
    """The flush + fsync barrier."""

    def test_flushes_and_syncs(self, tmp_path):
        target = tmp_path / "f.dat"
        with open(target, "wb") as f:
            f.write(b"abc")
            sync_file_to_disk(f, target)
            assert os.path.getsize(target) == 3

    def test_flush_failure(self, tmp_path):
        class BrokenFlush(io.BytesIO):
            def flush(self):
                raise OSError(5, "flush failed")

        with pytest.raises(SyncError) as exc_info:
            sync_file_to_disk(BrokenFlush(), tmp_path / "f.dat")
        assert exc_info.value.details["step"] == "flush"

    def test_fsync_failure(self, tmp_path, monkeypatch):
        def failing_fsync(fd):
            raise OSError(5, "Input/output error")

        monkeypatch.setattr("drivestress.storage.writer.os.fsync", failing_fsync)
        with open(tmp_path / "f.dat", "wb") as f, pytest.raises(SyncError) as exc_info:
            sync_file_to_disk(f, tmp_path / "f.dat")
        assert exc_info.value.details["step"] == "fsync"
