"""Concurrent multi-file orchestrator.

Each iteration fans N write+sync phases out to a thread pool, waits for all of
them, and only if every one succeeded verifies and deletes the whole set.
Results come back through one slot per worker; workers share no state.
"""

from __future__ import annotations

import asyncio
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Sequence

from drivestress.config.config import get_stress_config
from drivestress.core.base import StressLoop
from drivestress.core.cycle import FileCycle
from drivestress.models import (
    IterationOutcome,
    Stage,
    StressConfig,
    VerificationReport,
    VerifyFailure,
    WorkResult,
    WorkSpec,
)
from drivestress.storage.payload import derive_seed
from drivestress.utils.exceptions import ResourceError
from drivestress.utils.logging_config import log_exception


class ConcurrentOrchestrator(StressLoop):
    """Writes ``num_files`` files in parallel per iteration."""

    name = "multi"

    def __init__(
        self,
        config: StressConfig | None = None,
        executor: ThreadPoolExecutor | None = None,
    ):
        """Initialize the orchestrator with one pool thread per file."""
        config = config or get_stress_config()
        super().__init__(config, executor=executor, max_workers=config.num_files)
        self.num_files = config.num_files

    def build_specs(self, iteration: int, now: float | None = None) -> list[WorkSpec]:
        """One spec per worker with distinct paths and seeds.

        All seeds of an iteration are derived from the same timestamp, so
        worker ``i`` always gets ``base + i``.
        """
        now = time.time() if now is None else now
        return [
            WorkSpec(
                path=self.config.worker_file_path(index, iteration),
                size=self.config.payload_size,
                seed=derive_seed(now, iteration, index),
                chunk_size=self.config.chunk_size,
                worker_index=index,
            )
            for index in range(self.num_files)
        ]

    async def _fan_out(self, calls: Sequence[Callable[[], Any]]) -> list[Any]:
        """Run ``calls`` on the pool and return one result per slot.

        A call that could not be launched, or that raised, leaves its
        exception in the slot. Launching stops at the first launch failure,
        but every call that did start is awaited before returning.
        """
        slots: list[Any] = [None] * len(calls)
        launched: dict[int, asyncio.Future[Any]] = {}

        for index, call in enumerate(calls):
            try:
                launched[index] = self.run_in_pool(call)
            except RuntimeError as e:
                self.logger.error("Error starting worker %d: %s", index, e)
                error = ResourceError(f"Worker {index} could not be started: {e}")
                for skipped in range(index, len(calls)):
                    slots[skipped] = error
                break

        done = await asyncio.gather(*launched.values(), return_exceptions=True)
        for index, value in zip(launched, done):
            slots[index] = value

        for value in slots:
            # Core buffer allocation failure is fatal once every worker is joined
            if isinstance(value, MemoryError):
                raise value
        return slots

    def _as_work_result(self, spec: WorkSpec, value: Any) -> WorkResult:
        if isinstance(value, WorkResult):
            return value
        log_exception(self.logger, value, f"Worker {spec.worker_index} failed")
        return WorkResult(
            path=spec.path,
            seed=spec.seed,
            success=False,
            stage=Stage.WRITE,
            worker_index=spec.worker_index,
            error=str(value),
        )

    def _as_report(self, spec: WorkSpec, value: Any) -> VerificationReport:
        if isinstance(value, VerificationReport):
            return value
        self.logger.error("Verification of %s did not complete: %s", spec.path, value)
        return VerificationReport(
            path=spec.path,
            expected_size=spec.size,
            failure=VerifyFailure.READ_ERROR,
            detail=str(value),
        )

    async def run_iteration(self, iteration: int) -> IterationOutcome:
        """Write all files, then verify and delete them if every write succeeded."""
        self.logger.info("Iteration %d", iteration)
        specs = self.build_specs(iteration)
        cycles = [FileCycle(spec) for spec in specs]
        for spec in specs:
            self.logger.info(
                "Worker %d - Iteration: %d (Seed: %d), Writing file: %s",
                spec.worker_index,
                iteration,
                spec.seed,
                spec.path,
            )

        raw = await self._fan_out([cycle.write for cycle in cycles])
        results = [self._as_work_result(spec, value) for spec, value in zip(specs, raw)]

        if not all(result.success for result in results):
            for cycle in cycles:
                cycle.reset()
            self.logger.error(
                "One or more write workers FAILED on iteration %d. "
                "Skipping verification and deletion.",
                iteration,
            )
            return IterationOutcome(iteration=iteration, results=results, writes_ok=False)

        self.logger.info(
            "All write workers completed successfully for iteration %d.",
            iteration,
        )
        self.logger.info("Starting verification...")
        raw = await self._fan_out([cycle.verify for cycle in cycles])
        reports = [self._as_report(spec, value) for spec, value in zip(specs, raw)]

        for report in reports:
            if not report.ok:
                self.logger.critical(
                    "CRITICAL: Verification FAILED for %s on iteration %d.",
                    report.path,
                    iteration,
                )
        verified = all(report.ok for report in reports)
        self.logger.info("Verification phase %s.", "successful" if verified else "FAILED")

        self.logger.info("Deleting files...")
        deleted = await self._fan_out([cycle.delete for cycle in cycles])
        deleted_count = sum(1 for value in deleted if value is True)

        return IterationOutcome(
            iteration=iteration,
            results=[cycle.result or result for cycle, result in zip(cycles, results)],
            writes_ok=True,
            reports=reports,
            verified=verified,
            deleted=deleted_count,
            delete_failures=len(cycles) - deleted_count,
        )
