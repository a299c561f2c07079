"""Exception hierarchy for drivestress.

Disk errors are raised by the storage layer and caught by the cycle
controller, which decides whether a failure aborts the current file's cycle
or is only logged.
"""

from __future__ import annotations

from typing import Any


class DriveStressError(Exception):
    """Base exception for all drivestress errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize drivestress error."""
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class DiskError(DriveStressError):
    """Disk I/O related errors."""


class OpenError(DiskError):
    """Target file could not be created or opened."""


class WriteError(DiskError):
    """Short write or OS-level write failure."""


class SyncError(DiskError):
    """Flush or fsync (durability barrier) failure."""


class ReadError(DiskError):
    """Open failure, short read or premature EOF while verifying."""


class MismatchError(DiskError):
    """Persisted bytes differ from the regenerated payload."""

    def __init__(
        self,
        message: str,
        offset: int,
        details: dict[str, Any] | None = None,
    ):
        """Initialize mismatch error with the offset of the failing chunk."""
        super().__init__(message, details)
        self.offset = offset


class DeleteError(DiskError):
    """File removal failure."""


class ValidationError(DriveStressError):
    """Data validation errors."""


class ConfigurationError(ValidationError):
    """Configuration validation errors."""


class ResourceError(DriveStressError):
    """Worker could not be started (thread or memory exhaustion)."""
