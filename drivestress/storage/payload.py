"""Deterministic pseudo-random payload generation.

A payload is never held in memory as a whole. It is produced chunk by chunk
from a seeded generator, so the verifier can recreate exactly the bytes the
writer produced by replaying the same seed with the same chunk sizes.

Each ``PayloadGenerator`` owns a private ``random.Random`` instance. The
module-level ``random`` state is never touched, which keeps concurrent
workers from interleaving their streams.
"""

from __future__ import annotations

import random
import time
from typing import Iterator

from drivestress.models import SEED_MAX

SEED_MASK = SEED_MAX


def derive_seed(
    timestamp: float | None = None,
    iteration: int = 0,
    worker_index: int = 0,
) -> int:
    """Derive a 32-bit payload seed.

    Workers of the same iteration differ in ``worker_index`` and therefore get
    distinct seeds. The value is computed once per file and stored in its
    ``WorkSpec``; verification reuses it instead of reading the clock again.
    """
    if timestamp is None:
        timestamp = time.time()
    return (int(timestamp) + iteration + worker_index) & SEED_MASK


def iter_chunk_sizes(total_size: int, chunk_size: int) -> Iterator[tuple[int, int]]:
    """Yield ``(offset, length)`` for each chunk of a payload.

    Every chunk is ``chunk_size`` long except the last, which is truncated to
    the remainder. A zero-length chunk is never yielded, so a zero-byte
    payload yields nothing.
    """
    if chunk_size <= 0:
        msg = f"chunk_size must be positive, got {chunk_size}"
        raise ValueError(msg)
    if total_size < 0:
        msg = f"total_size must not be negative, got {total_size}"
        raise ValueError(msg)

    offset = 0
    while offset < total_size:
        length = min(chunk_size, total_size - offset)
        yield offset, length
        offset += length


class PayloadGenerator:
    """Reproducible byte stream for one seed."""

    def __init__(self, seed: int):
        """Initialize the generator at the start of the stream for ``seed``."""
        if not 0 <= seed <= SEED_MAX:
            msg = f"seed must fit in 32 bits, got {seed}"
            raise ValueError(msg)
        self.seed = seed
        self._rng = random.Random(seed)
        self.position = 0

    def next_chunk(self, size: int) -> bytes:
        """Return the next ``size`` bytes of the stream."""
        if size <= 0:
            msg = f"chunk size must be positive, got {size}"
            raise ValueError(msg)
        data = self._rng.randbytes(size)
        self.position += size
        return data

    def chunks(self, total_size: int, chunk_size: int) -> Iterator[tuple[int, bytes]]:
        """Yield ``(offset, data)`` for the whole payload in chunk order."""
        for offset, length in iter_chunk_sizes(total_size, chunk_size):
            yield offset, self.next_chunk(length)

    def reset(self) -> None:
        """Rewind to the start of the stream."""
        self._rng.seed(self.seed)
        self.position = 0

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"PayloadGenerator(seed={self.seed}, position={self.position})"
