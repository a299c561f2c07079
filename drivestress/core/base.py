"""Base class for the stress loops.

Owns what the single-file and multi-file loops have in common: the iteration
counter, the in-memory stats, the thread pool that runs blocking file I/O,
the delay between iterations and the stop conditions.
"""

from __future__ import annotations

import asyncio
import contextvars
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

from drivestress.config.config import get_stress_config
from drivestress.models import IterationOutcome, StressConfig, StressStats
from drivestress.utils.backoff import FixedBackoff
from drivestress.utils.logging_config import get_logger, set_correlation_id
from drivestress.utils.shutdown import is_shutting_down

SEPARATOR = "-" * 37


class StressLoop(ABC):
    """Runs iterations until interrupted or ``max_iterations`` is reached."""

    name = "stress"

    def __init__(
        self,
        config: StressConfig | None = None,
        executor: ThreadPoolExecutor | None = None,
        max_workers: int = 1,
    ):
        """Initialize the loop.

        Args:
            config: Stress settings, defaults to the global configuration
            executor: Thread pool for file I/O; one is created when omitted
            max_workers: Size of the created thread pool

        """
        self.config = config or get_stress_config()
        self.iteration = 0
        self.stats = StressStats()
        self.backoff = FixedBackoff(
            failure_delay=self.config.failure_delay,
            success_delay=self.config.iteration_delay,
        )
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix=f"{self.name}-io",
        )
        self.logger = get_logger(self.__class__.__module__)

    def run_in_pool(self, call: Callable[[], Any]) -> asyncio.Future[Any]:
        """Run ``call`` on the pool inside a copy of the current context.

        The copy carries the iteration's correlation id into the worker
        thread. Raises ``RuntimeError`` when the pool cannot take the call.
        """
        loop = asyncio.get_running_loop()
        context = contextvars.copy_context()
        return loop.run_in_executor(self.executor, context.run, call)

    @abstractmethod
    async def run_iteration(self, iteration: int) -> IterationOutcome:
        """Run one complete iteration and report its outcome."""

    def should_stop(self) -> bool:
        """True once shutdown was requested or the iteration limit is reached."""
        if is_shutting_down():
            return True
        limit = self.config.max_iterations
        return limit is not None and self.iteration >= limit

    async def run(self) -> StressStats:
        """Loop over iterations; only shutdown or ``max_iterations`` ends it."""
        interrupted = False
        try:
            while not self.should_stop():
                self.iteration += 1
                set_correlation_id(f"{self.name}-{self.iteration}")
                outcome = await self.run_iteration(self.iteration)
                self.stats.record(outcome)
                self.logger.info(SEPARATOR)

                if self.should_stop():
                    break
                delay = self.backoff.next_delay(outcome.writes_ok)
                if delay > 0:
                    await asyncio.sleep(delay)
        except (asyncio.CancelledError, KeyboardInterrupt):
            interrupted = True
            raise
        finally:
            self.close(wait=not interrupted)
        return self.stats

    def close(self, wait: bool = True) -> None:
        """Release the thread pool if this loop created it.

        With ``wait=False`` queued calls are cancelled and the call in flight
        is left to finish in the background.
        """
        if self._owns_executor:
            self.executor.shutdown(wait=wait, cancel_futures=not wait)
