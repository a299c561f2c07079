"""Single-file cycle controller.

``FileCycle`` drives one file through write → sync → verify → delete and
records the state transitions. It is shared by the single-file loop below and
by the concurrent orchestrator, which owns one ``FileCycle`` per worker.
"""

from __future__ import annotations

import os
import time
from concurrent.futures import ThreadPoolExecutor

from drivestress.core.base import StressLoop
from drivestress.models import (
    CycleState,
    IterationOutcome,
    Stage,
    StressConfig,
    VerificationReport,
    WorkResult,
    WorkSpec,
)
from drivestress.storage.payload import derive_seed
from drivestress.storage.verifier import verify_payload
from drivestress.storage.writer import write_payload
from drivestress.utils.exceptions import DeleteError
from drivestress.utils.logging_config import LoggingContext, get_logger

logger = get_logger(__name__)

# Allowed transitions; anything else is a programming error
_TRANSITIONS: dict[CycleState, frozenset[CycleState]] = {
    CycleState.IDLE: frozenset({CycleState.WRITING}),
    CycleState.WRITING: frozenset({CycleState.SYNCING, CycleState.FAILED}),
    # SYNCING -> DELETING when a verification worker could not be started
    CycleState.SYNCING: frozenset(
        {CycleState.VERIFYING, CycleState.DELETING, CycleState.FAILED}
    ),
    CycleState.VERIFYING: frozenset({CycleState.DELETING}),
    CycleState.DELETING: frozenset({CycleState.IDLE}),
    CycleState.FAILED: frozenset({CycleState.IDLE}),
}


class FileCycle:
    """State machine for one file of one iteration."""

    def __init__(self, spec: WorkSpec):
        """Initialize the cycle in the ``IDLE`` state."""
        self.spec = spec
        self.state = CycleState.IDLE
        self.transitions: list[CycleState] = [CycleState.IDLE]
        self.result: WorkResult | None = None
        self.report: VerificationReport | None = None

    def _enter(self, state: CycleState) -> None:
        if state not in _TRANSITIONS[self.state]:
            msg = f"Invalid cycle transition {self.state.value} -> {state.value}"
            raise RuntimeError(msg)
        self.state = state
        self.transitions.append(state)

    def write(self) -> WorkResult:
        """Write the payload and run the durability barrier.

        The barrier runs inside ``write_payload``; reaching ``SYNCING`` means
        the write completed and the barrier was attempted.
        """
        self._enter(CycleState.WRITING)
        with LoggingContext("write", path=str(self.spec.path), seed=self.spec.seed):
            result = write_payload(self.spec)
        self.result = result
        if result.success:
            self._enter(CycleState.SYNCING)
        else:
            self._enter(CycleState.FAILED)
        return result

    def verify(self) -> VerificationReport:
        """Compare the file with the payload regenerated from the write seed."""
        self._enter(CycleState.VERIFYING)
        with LoggingContext("verify", path=str(self.spec.path), seed=self.spec.seed):
            report = verify_payload(self.spec)
        self.report = report
        if self.result is not None:
            self.result = self.result.model_copy(update={"stage": Stage.VERIFY})
        return report

    def delete(self) -> bool:
        """Remove the file; failures are logged, never raised."""
        self._enter(CycleState.DELETING)
        try:
            os.remove(self.spec.path)
        except OSError as e:
            error = DeleteError(
                f"Error deleting {self.spec.path}: {e.strerror or e}",
                {"path": str(self.spec.path)},
            )
            logger.error("%s", error.message)
            return False
        else:
            logger.info("Deleted %s successfully.", self.spec.path)
            return True
        finally:
            self._enter(CycleState.IDLE)

    def reset(self) -> None:
        """Return a failed cycle to ``IDLE``."""
        if self.state is CycleState.FAILED:
            self._enter(CycleState.IDLE)

    def __repr__(self) -> str:
        """Return a debug representation."""
        return f"FileCycle(path={str(self.spec.path)!r}, state={self.state.value})"


class SingleFileStressLoop(StressLoop):
    """Rewrites one fixed file every iteration."""

    name = "single"

    def __init__(
        self,
        config: StressConfig | None = None,
        executor: ThreadPoolExecutor | None = None,
    ):
        """Initialize the loop with a one-thread pool."""
        super().__init__(config, executor=executor, max_workers=1)
        self.path = self.config.single_file_path()

    def build_spec(self, iteration: int, now: float | None = None) -> WorkSpec:
        """Spec for this iteration, seeded from the clock and the iteration."""
        return WorkSpec(
            path=self.path,
            size=self.config.payload_size,
            seed=derive_seed(time.time() if now is None else now, iteration),
            chunk_size=self.config.chunk_size,
        )

    async def run_iteration(self, iteration: int) -> IterationOutcome:
        """Write, verify and delete the target file once."""
        spec = self.build_spec(iteration)
        cycle = FileCycle(spec)

        self.logger.info("Iteration %d (Seed: %d)", iteration, spec.seed)
        self.logger.info("Writing file %s...", spec.path)
        result = await self.run_in_pool(cycle.write)

        if not result.success:
            cycle.reset()
            self.logger.warning("Skipping to next iteration due to write error.")
            return IterationOutcome(iteration=iteration, results=[result], writes_ok=False)

        self.logger.info("Write phase complete. Bytes targeted: %d", spec.size)
        self.logger.info("Verifying file contents...")
        report = await self.run_in_pool(cycle.verify)
        if not report.ok:
            self.logger.critical(
                "CRITICAL: Verification FAILED for %s on iteration %d.",
                spec.path,
                iteration,
            )

        self.logger.info("Deleting file %s...", spec.path)
        deleted = await self.run_in_pool(cycle.delete)

        return IterationOutcome(
            iteration=iteration,
            results=[cycle.result or result],
            writes_ok=True,
            reports=[report],
            verified=report.ok,
            deleted=int(deleted),
            delete_failures=int(not deleted),
        )
