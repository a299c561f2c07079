"""Pydantic models for drivestress.

Provides validated data models for the stress cycle and the configuration.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

SEED_BITS = 32
SEED_MAX = (1 << SEED_BITS) - 1
MEGABYTE = 1024 * 1024
KIBIBYTE = 1024


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Stage(str, Enum):
    """Furthest stage a worker reached for its file."""

    WRITE = "write"
    SYNC = "sync"
    VERIFY = "verify"


class CycleState(str, Enum):
    """States of the single-file write/sync/verify/delete cycle."""

    IDLE = "idle"
    WRITING = "writing"
    SYNCING = "syncing"
    VERIFYING = "verifying"
    DELETING = "deleting"
    FAILED = "failed"


class VerifyFailure(str, Enum):
    """Why a verification pass stopped early."""

    OPEN = "open"
    TRUNCATED = "truncated"  # EOF before the expected size
    SHORT_READ = "short_read"  # fewer bytes than requested without EOF
    READ_ERROR = "read_error"
    MISMATCH = "mismatch"


class WorkSpec(BaseModel):
    """One file to write and verify, owned by a single worker."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(..., description="Target file path")
    size: int = Field(..., ge=0, description="Payload size in bytes")
    seed: int = Field(..., ge=0, le=SEED_MAX, description="32-bit payload seed")
    chunk_size: int = Field(
        default=MEGABYTE,
        gt=0,
        description="Bytes generated, written and compared per step",
    )
    worker_index: int = Field(default=0, ge=0, description="Worker slot")


class WorkResult(BaseModel):
    """Outcome of one worker's write and sync phase."""

    path: Path
    seed: int
    success: bool
    stage: Stage
    bytes_written: int = Field(default=0, ge=0)
    worker_index: int = Field(default=0, ge=0)
    error: str | None = None
    sync_error: str | None = None


class VerificationReport(BaseModel):
    """Result of re-reading a file and comparing it with its payload."""

    path: Path
    expected_size: int = Field(..., ge=0)
    bytes_verified: int = Field(default=0, ge=0)
    failure: VerifyFailure | None = None
    offset: int | None = Field(
        default=None,
        description="Start of the chunk where verification stopped",
    )
    detail: str | None = None

    @property
    def ok(self) -> bool:
        """True when the whole expected payload matched."""
        return self.failure is None and self.bytes_verified == self.expected_size

    def __bool__(self) -> bool:
        """Truthiness follows ``ok``."""
        return self.ok


class IterationOutcome(BaseModel):
    """Aggregate result of one stress iteration across all of its files."""

    iteration: int = Field(..., ge=1)
    results: list[WorkResult] = Field(default_factory=list)
    writes_ok: bool = False
    reports: list[VerificationReport] = Field(default_factory=list)
    verified: bool | None = Field(
        default=None,
        description="None when verification was skipped",
    )
    deleted: int = Field(default=0, ge=0)
    delete_failures: int = Field(default=0, ge=0)

    @property
    def succeeded(self) -> bool:
        """True when every file was written and verified."""
        return self.writes_ok and bool(self.verified)


class StressStats(BaseModel):
    """In-memory counters for the current run."""

    iterations: int = 0
    write_failures: int = 0
    verification_failures: int = 0
    delete_failures: int = 0
    files_verified: int = 0
    bytes_written: int = 0

    def record(self, outcome: IterationOutcome) -> None:
        """Fold one iteration into the counters."""
        self.iterations += 1
        self.bytes_written += sum(r.bytes_written for r in outcome.results)
        if not outcome.writes_ok:
            self.write_failures += 1
            return
        self.files_verified += sum(1 for r in outcome.reports if r.ok)
        if outcome.verified is False:
            self.verification_failures += 1
        self.delete_failures += outcome.delete_failures


class StressConfig(BaseModel):
    """Payload, file layout and pacing of the stress loop."""

    file_size_mb: int = Field(
        default=10,
        ge=1,
        description="Payload size per file in megabytes",
    )
    file_size_bytes: int | None = Field(
        default=None,
        ge=0,
        description="Exact payload size in bytes, overrides file_size_mb",
    )
    chunk_size_kib: int = Field(
        default=1024,
        ge=1,
        le=1024 * 1024,
        description="Generation/write/read unit in KiB",
    )
    num_files: int = Field(
        default=2,
        ge=1,
        le=4096,
        description="Concurrent files per iteration (multi-file mode)",
    )
    file_name: str = Field(
        default="stress_test_file_linux.dat",
        description="Target file name (single-file mode)",
    )
    file_prefix: str = Field(
        default="stress_test_file_",
        description="File name prefix (multi-file mode)",
    )
    target_dir: str = Field(default=".", description="Directory for test files")
    failure_delay: float = Field(
        default=1.0,
        ge=0.0,
        le=3600.0,
        description="Pause in seconds after a failed iteration",
    )
    iteration_delay: float = Field(
        default=0.0,
        ge=0.0,
        le=3600.0,
        description="Pause in seconds after a successful iteration",
    )
    max_iterations: int | None = Field(
        default=None,
        ge=1,
        description="Stop after this many iterations (None runs until interrupted)",
    )

    @field_validator("file_name", "file_prefix")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Reject empty names."""
        if not v.strip():
            msg = "File name must not be empty"
            raise ValueError(msg)
        return v

    @property
    def payload_size(self) -> int:
        """Payload size per file in bytes."""
        if self.file_size_bytes is not None:
            return self.file_size_bytes
        return self.file_size_mb * MEGABYTE

    @property
    def chunk_size(self) -> int:
        """Chunk size in bytes."""
        return self.chunk_size_kib * KIBIBYTE

    def single_file_path(self) -> Path:
        """Path of the file rewritten by the single-file loop."""
        name = Path(self.file_name)
        if name.is_absolute():
            return name
        return Path(self.target_dir) / name

    def worker_file_path(self, worker_index: int, iteration: int) -> Path:
        """Path of one worker's file in the multi-file loop."""
        return Path(self.target_dir) / f"{self.file_prefix}{worker_index}_{iteration}.dat"


class ObservabilityConfig(BaseModel):
    """Logging configuration."""

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Log level")
    log_file: str | None = Field(None, description="Log file path")
    structured_logging: bool = Field(
        default=False,
        description="Emit one JSON object per log line",
    )
    log_correlation_id: bool = Field(
        default=True,
        description="Include correlation IDs",
    )
    colored_output: bool = Field(
        default=True,
        description="Highlight outcomes in console output",
    )
    log_format: str = Field(
        default="%(asctime)s %(levelname)s %(name)s: %(message)s",
        description="Log format string for the log file",
    )


class Config(BaseModel):
    """Main configuration model."""

    stress: StressConfig = Field(
        default_factory=StressConfig,
        description="Stress loop configuration",
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Observability configuration",
    )
