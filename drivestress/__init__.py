"""drivestress - A hard drive write/verify stress tester."""

from __future__ import annotations

__version__ = "0.1.0"
