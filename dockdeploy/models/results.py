"""
Result Models

Dataclass models for operation results and the deployment audit trail.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Iterator, Optional

from dockdeploy.constants import STAGE_CLEANUP
from dockdeploy.exceptions import CleanupError


class StepOutcome(Enum):
    """Outcome of one pipeline stage."""

    RUNNING = "running"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class ValidationResult:
    """Result of a validation operation."""

    is_valid: bool = True
    errors: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if validation has errors."""
        return len(self.errors) > 0

    def add_error(self, error: str) -> None:
        """Add an error to the validation result."""
        self.errors.append(error)
        self.is_valid = False

    def __repr__(self) -> str:
        return f"ValidationResult(valid={self.is_valid}, errors={len(self.errors)})"


@dataclass
class SSHResult:
    """Result of an SSH command execution."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    host: str = ""
    command: str = ""
    duration_seconds: float = 0.0

    @property
    def is_success(self) -> bool:
        """Check if SSH command succeeded."""
        return self.returncode == 0

    @property
    def is_failure(self) -> bool:
        """Check if SSH command failed."""
        return self.returncode != 0

    @property
    def output(self) -> str:
        """Get combined output (stdout + stderr)."""
        return f"{self.stdout}\n{self.stderr}".strip()

    def __repr__(self) -> str:
        return f"SSHResult(host={self.host}, returncode={self.returncode}, duration={self.duration_seconds:.2f}s)"


@dataclass(frozen=True)
class StepRecord:
    """
    One attempted pipeline stage.

    Created with begin() right before the stage runs; finish() returns the
    finalized copy. Instances are never mutated.
    """

    name: str
    outcome: StepOutcome = StepOutcome.RUNNING
    diagnostic: str = ""
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    @classmethod
    def begin(cls, name: str) -> "StepRecord":
        return cls(name=name)

    def finish(self, outcome: StepOutcome, diagnostic: str = "") -> "StepRecord":
        if self.finished_at is not None:
            raise RuntimeError(f"Step '{self.name}' is already finalized")
        return replace(
            self, outcome=outcome, diagnostic=diagnostic, finished_at=datetime.now()
        )

    @property
    def is_success(self) -> bool:
        return self.outcome == StepOutcome.SUCCESS

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()


class AuditTrail:
    """Append-only, ordered sequence of finalized step records."""

    def __init__(self):
        self._records: list[StepRecord] = []

    def append(self, record: StepRecord) -> None:
        if record.finished_at is None:
            raise ValueError(f"Step '{record.name}' must be finalized before recording")
        self._records.append(record)

    @property
    def records(self) -> tuple[StepRecord, ...]:
        return tuple(self._records)

    def __iter__(self) -> Iterator[StepRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one post-deploy check."""

    name: str
    passed: bool
    detail: str = ""


@dataclass
class CleanupReport:
    """Steps that completed during cleanup and the errors collected on the way."""

    completed: list[str] = field(default_factory=list)
    errors: list[CleanupError] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return not self.errors

    def summary(self) -> str:
        if self.is_success:
            return f"{len(self.completed)} step(s) completed"
        failed = ", ".join(e.step for e in self.errors)
        return f"{len(self.completed)} step(s) completed, failed: {failed}"


@dataclass
class PipelineResult:
    """Outcome of one pipeline run."""

    records: tuple[StepRecord, ...]
    cleanup: Optional[CleanupReport] = None

    @property
    def succeeded(self) -> bool:
        return all(r.is_success for r in self.records if r.name != STAGE_CLEANUP)
