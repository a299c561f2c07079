"""Command line interface for drivestress."""

from __future__ import annotations

from drivestress.cli.main import cli, main

__all__ = [
    "cli",
    "main",
]
