"""Property-based tests for payload generation and verification.

Tests determinism, chunking and corruption detection using Hypothesis
for automatic test case generation.
"""

from __future__ import annotations

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

import pytest

pytestmark = [pytest.mark.property]

from drivestress.models import SEED_MAX, VerifyFailure, WorkSpec
from drivestress.storage.payload import PayloadGenerator, derive_seed, iter_chunk_sizes
from drivestress.storage.verifier import verify_payload
from drivestress.storage.writer import write_payload

seeds = st.integers(min_value=0, max_value=SEED_MAX)


class TestPayloadProperties:
    """Invariants of the seeded byte stream."""

    @given(seeds, st.integers(min_value=0, max_value=20_000), st.integers(1, 4096))
    def test_chunks_tile_the_payload(self, seed, total, chunk):
        chunks = list(PayloadGenerator(seed).chunks(total, chunk))

        assert sum(len(data) for _, data in chunks) == total
        assert all(0 < len(data) <= chunk for _, data in chunks)
        offsets = [offset for offset, _ in chunks]
        assert offsets == sorted(offsets)
        assert offsets == [i * chunk for i in range(len(chunks))]

    @given(seeds, st.integers(min_value=1, max_value=10_000), st.integers(1, 2048))
    def test_same_seed_same_chunks_same_bytes(self, seed, total, chunk):
        first = b"".join(data for _, data in PayloadGenerator(seed).chunks(total, chunk))
        second = b"".join(data for _, data in PayloadGenerator(seed).chunks(total, chunk))
        assert first == second

    @given(
        st.floats(min_value=0, max_value=2**40, allow_nan=False),
        st.integers(min_value=0, max_value=2**31),
        st.integers(min_value=0, max_value=4096),
    )
    def test_derived_seed_is_32_bit(self, timestamp, iteration, worker_index):
        assert 0 <= derive_seed(timestamp, iteration, worker_index) <= SEED_MAX

    @given(st.integers(min_value=0, max_value=20_000), st.integers(min_value=1, max_value=4096))
    def test_chunk_sizes_are_bounded(self, total, chunk):
        lengths = [length for _, length in iter_chunk_sizes(total, chunk)]
        assert sum(lengths) == total
        assert all(length == chunk for length in lengths[:-1])


class TestVerificationProperties:
    """Write then verify against a temporary directory."""

    @settings(
        max_examples=30,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    @given(seeds, st.integers(min_value=0, max_value=8192), st.integers(1, 3000))
    def test_written_payload_verifies(self, tmp_path, seed, size, chunk):
        spec = WorkSpec(path=tmp_path / "p.dat", size=size, seed=seed, chunk_size=chunk)

        assert write_payload(spec).success
        assert verify_payload(spec).ok

    @settings(
        max_examples=30,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    @given(seeds, st.integers(min_value=1, max_value=8192), st.integers(1, 3000), st.data())
    def test_any_flipped_byte_is_caught_at_its_chunk(self, tmp_path, seed, size, chunk, data):
        spec = WorkSpec(path=tmp_path / "p.dat", size=size, seed=seed, chunk_size=chunk)
        write_payload(spec)
        position = data.draw(st.integers(min_value=0, max_value=size - 1))
        content = bytearray(spec.path.read_bytes())
        content[position] ^= 0x80
        spec.path.write_bytes(bytes(content))

        report = verify_payload(spec)

        assert report.failure is VerifyFailure.MISMATCH
        assert report.offset == (position // chunk) * chunk
