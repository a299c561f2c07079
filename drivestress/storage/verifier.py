"""Verification engine.

Re-reads a written file chunk by chunk and compares every chunk with the
payload regenerated from the same seed. The expected bytes come from a fresh
``PayloadGenerator`` and the actual bytes are read into a separate reusable
buffer, so the two are never aliased.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import IO

from drivestress.models import MEGABYTE, VerificationReport, VerifyFailure, WorkSpec
from drivestress.storage.payload import PayloadGenerator, iter_chunk_sizes
from drivestress.utils.exceptions import DiskError, MismatchError, ReadError
from drivestress.utils.logging_config import get_logger

logger = get_logger(__name__)


def _read_chunk(handle: IO[bytes], view: memoryview) -> tuple[int, bool]:
    """Fill ``view`` from ``handle``.

    Returns the number of bytes read and whether EOF was hit. A single
    ``readinto`` on a buffered file retries internally, so a shortfall with no
    EOF means the device returned less than asked for.
    """
    n = handle.readinto(view) or 0
    if n == len(view):
        return n, False
    # A follow-up zero-length read distinguishes EOF from a short read
    at_eof = handle.read(1) == b""
    return n, at_eof


def _first_difference(expected: bytes, actual: memoryview) -> int:
    """Index of the first differing byte of two equal-length sequences."""
    for i, (a, b) in enumerate(zip(expected, actual)):
        if a != b:
            return i
    return min(len(expected), len(actual))


def verify_payload(spec: WorkSpec) -> VerificationReport:
    """Compare the file at ``spec.path`` with the payload for ``spec.seed``.

    Stops at the first problem. Only the first ``spec.size`` bytes are
    compared; trailing bytes beyond the expected size are ignored.
    """
    path = Path(spec.path)

    def _fail(
        failure: VerifyFailure,
        bytes_verified: int,
        offset: int | None,
        detail: str,
    ) -> VerificationReport:
        error: DiskError
        if failure is VerifyFailure.MISMATCH and offset is not None:
            error = MismatchError(detail, offset, {"path": str(path)})
        else:
            error = ReadError(detail, {"path": str(path), "failure": failure.value})
        logger.error("VERIFY: %s", error.message)
        return VerificationReport(
            path=path,
            expected_size=spec.size,
            bytes_verified=bytes_verified,
            failure=failure,
            offset=offset,
            detail=detail,
        )

    try:
        handle = open(path, "rb")
    except OSError as e:
        return _fail(
            VerifyFailure.OPEN,
            0,
            None,
            f"Error opening file {path} for verification: {e.strerror or e}",
        )

    generator = PayloadGenerator(spec.seed)
    buffer = bytearray(min(spec.chunk_size, spec.size) or 1)
    bytes_verified = 0

    with handle:
        for offset, length in iter_chunk_sizes(spec.size, spec.chunk_size):
            expected = generator.next_chunk(length)
            view = memoryview(buffer)[:length]

            try:
                num_read, at_eof = _read_chunk(handle, view)
            except OSError as e:
                return _fail(
                    VerifyFailure.READ_ERROR,
                    bytes_verified,
                    offset,
                    f"Error reading file {path}: {e.strerror or e}",
                )

            if num_read != length:
                if at_eof:
                    return _fail(
                        VerifyFailure.TRUNCATED,
                        bytes_verified,
                        offset,
                        f"Premature end of file for {path}. "
                        f"Expected {spec.size}, got {bytes_verified} + {num_read}",
                    )
                return _fail(
                    VerifyFailure.SHORT_READ,
                    bytes_verified,
                    offset,
                    f"Short read from {path}. Expected {length}, got {num_read}",
                )

            if view != expected:
                index = offset + _first_difference(expected, view)
                return _fail(
                    VerifyFailure.MISMATCH,
                    bytes_verified,
                    offset,
                    f"Data mismatch in {path} at offset {offset} "
                    f"(first differing byte at {index})",
                )

            bytes_verified += length

    logger.info("Verification successful for %s.", path)
    return VerificationReport(
        path=path,
        expected_size=spec.size,
        bytes_verified=bytes_verified,
    )


def verify_file(
    path: os.PathLike | str,
    expected_size: int,
    seed: int,
    chunk_size: int = MEGABYTE,
) -> bool:
    """Return True when ``path`` starts with the payload for ``seed``."""
    spec = WorkSpec(path=Path(path), size=expected_size, seed=seed, chunk_size=chunk_size)
    return verify_payload(spec).ok
