"""Global shutdown state management.

The stress loops run until this flag is set, normally by the CLI when the
user presses Ctrl+C or the process receives SIGTERM.
"""

from __future__ import annotations

import threading

# Global shutdown flag (thread-safe)
_shutdown_flag: threading.Event = threading.Event()


def is_shutting_down() -> bool:
    """Check if shutdown is in progress.

    Returns:
        True if shutdown has been initiated, False otherwise

    """
    return _shutdown_flag.is_set()


def set_shutdown() -> None:
    """Mark that shutdown has been initiated."""
    _shutdown_flag.set()


def clear_shutdown() -> None:
    """Clear shutdown flag (for testing)."""
    _shutdown_flag.clear()
