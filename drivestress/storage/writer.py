"""Durable write pipeline.

Streams a generated payload into a file in offset order, then forces it to
the device with a flush + fsync barrier before reporting success.
"""

from __future__ import annotations

import os
from typing import IO

from drivestress.models import Stage, WorkResult, WorkSpec
from drivestress.storage.payload import PayloadGenerator
from drivestress.utils.exceptions import OpenError, SyncError, WriteError
from drivestress.utils.logging_config import get_logger

logger = get_logger(__name__)


def sync_file_to_disk(handle: IO[bytes], path: os.PathLike | str) -> None:
    """Flush in-process buffers, then fsync the descriptor.

    Raises:
        SyncError: if either step fails

    """
    try:
        handle.flush()
    except OSError as e:
        msg = f"Error flushing buffer for {path}: {e.strerror or e}"
        raise SyncError(msg, {"path": str(path), "step": "flush"}) from e

    try:
        os.fsync(handle.fileno())
    except OSError as e:
        msg = f"Error syncing {path} to disk (fsync): {e.strerror or e}"
        raise SyncError(msg, {"path": str(path), "step": "fsync"}) from e


def _write_chunks(handle: IO[bytes], spec: WorkSpec, generator: PayloadGenerator) -> int:
    """Write every chunk of the payload, returning the bytes written.

    Raises:
        WriteError: on the first short or failed write; remaining chunks are skipped

    """
    bytes_written = 0
    for offset, data in generator.chunks(spec.size, spec.chunk_size):
        try:
            written = handle.write(data)
        except OSError as e:
            msg = f"Error writing data to {spec.path}: {e.strerror or e}"
            raise WriteError(msg, {"offset": offset, "bytes_written": bytes_written}) from e
        if written is not None and written != len(data):
            msg = f"Short write to {spec.path}: {written} of {len(data)} bytes"
            raise WriteError(msg, {"offset": offset, "bytes_written": bytes_written})
        bytes_written += len(data)
    return bytes_written


def write_payload(spec: WorkSpec) -> WorkResult:
    """Write the payload described by ``spec`` and make it durable.

    The durability barrier and the close are attempted even after a write
    failure so the descriptor is never leaked. A barrier failure is logged
    and recorded in ``sync_error`` but does not turn a complete write into a
    failure, since the data may already be on the device.
    """
    generator = PayloadGenerator(spec.seed)

    try:
        handle = open(spec.path, "wb")
    except OSError as e:
        error = OpenError(
            f"Error opening {spec.path} for writing: {e.strerror or e}",
            {"path": str(spec.path)},
        )
        logger.error("%s", error.message)
        return WorkResult(
            path=spec.path,
            seed=spec.seed,
            success=False,
            stage=Stage.WRITE,
            worker_index=spec.worker_index,
            error=error.message,
        )

    write_error: WriteError | None = None
    sync_error: SyncError | None = None
    bytes_written = 0
    try:
        try:
            bytes_written = _write_chunks(handle, spec, generator)
            logger.debug(
                "Write phase complete for %s. Bytes targeted: %d",
                spec.path,
                spec.size,
            )
        except WriteError as e:
            write_error = e
            bytes_written = e.details.get("bytes_written", 0)
            logger.error("%s", e.message)

        try:
            sync_file_to_disk(handle, spec.path)
        except SyncError as e:
            sync_error = e
            logger.error("%s", e.message)
    finally:
        try:
            handle.close()
        except OSError as e:
            logger.error("Error closing %s after writing: %s", spec.path, e.strerror or e)

    if write_error is not None:
        return WorkResult(
            path=spec.path,
            seed=spec.seed,
            success=False,
            stage=Stage.WRITE,
            bytes_written=bytes_written,
            worker_index=spec.worker_index,
            error=write_error.message,
            sync_error=sync_error.message if sync_error else None,
        )

    return WorkResult(
        path=spec.path,
        seed=spec.seed,
        success=True,
        stage=Stage.SYNC,
        bytes_written=bytes_written,
        worker_index=spec.worker_index,
        sync_error=sync_error.message if sync_error else None,
    )
