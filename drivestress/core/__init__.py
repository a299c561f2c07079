"""Stress loops: the single-file cycle and the concurrent orchestrator."""

from __future__ import annotations

from drivestress.core.base import StressLoop
from drivestress.core.cycle import FileCycle, SingleFileStressLoop
from drivestress.core.orchestrator import ConcurrentOrchestrator

__all__ = [
    "ConcurrentOrchestrator",
    "FileCycle",
    "SingleFileStressLoop",
    "StressLoop",
]
