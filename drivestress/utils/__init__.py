"""Shared utilities and infrastructure.

This module contains common utilities used throughout the application.
"""

from __future__ import annotations

from drivestress.utils.exceptions import (
    ConfigurationError,
    DeleteError,
    DiskError,
    DriveStressError,
    MismatchError,
    OpenError,
    ReadError,
    ResourceError,
    SyncError,
    ValidationError,
    WriteError,
)
from drivestress.utils.logging_config import get_logger, setup_logging

__all__ = [
    # Exceptions
    "ConfigurationError",
    "DeleteError",
    "DiskError",
    "DriveStressError",
    "MismatchError",
    "OpenError",
    "ReadError",
    "ResourceError",
    "SyncError",
    "ValidationError",
    "WriteError",
    # Logging
    "get_logger",
    "setup_logging",
]
