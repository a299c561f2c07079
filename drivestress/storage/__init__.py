"""Payload generation, durable writes and read-back verification."""

from __future__ import annotations

from drivestress.storage.payload import PayloadGenerator, derive_seed, iter_chunk_sizes
from drivestress.storage.verifier import verify_file, verify_payload
from drivestress.storage.writer import sync_file_to_disk, write_payload

__all__ = [
    "PayloadGenerator",
    "derive_seed",
    "iter_chunk_sizes",
    "sync_file_to_disk",
    "verify_file",
    "verify_payload",
    "write_payload",
]
