"""Delay policies applied between stress iterations."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class FixedBackoff:
    """Constant delay after a failed iteration.

    A failed iteration is never retried; the delay only keeps a persistently
    failing device from being hammered in a tight loop.
    """

    failure_delay: float = 1.0
    success_delay: float = 0.0

    def next_delay(self, succeeded: bool) -> float:
        """Return the pause before the next iteration."""
        delay = self.success_delay if succeeded else self.failure_delay
        return max(0.0, delay)
