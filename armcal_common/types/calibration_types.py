"""Common type definitions for the calibration workflow."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from armcal_common.constants import EXIT_FAILURE, EXIT_INTERRUPTED, EXIT_SUCCESS


class CalibrationStatus(Enum):
    """Status reported by the remote calibration sequence."""

    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    ERROR = "error"

    @classmethod
    def parse(cls, value: Any) -> "CalibrationStatus":
        """Map a raw status value to an enum member, defaulting to ERROR."""
        try:
            return cls(value)
        except ValueError:
            return cls.ERROR


class PollState(Enum):
    """States of the calibration poll loop."""

    STARTED = "started"
    POLLING = "polling"
    SUCCESS = "success"
    FAILED = "failed"


class TransportMode(Enum):
    """How requests reach the robot-control service."""

    LIVE = "live"
    DRY_RUN = "dry_run"
    SIMULATE = "simulate"


@dataclass(frozen=True)
class CalibrationProgress:
    """Snapshot of one calibration status response."""

    status: CalibrationStatus = CalibrationStatus.ERROR
    current_step: int = 0
    total_steps: int = 0
    message: str = ""
    raw_status: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.status is not CalibrationStatus.IN_PROGRESS

    def __str__(self) -> str:
        status = self.raw_status or self.status.value
        return f"{status} ({self.current_step}/{self.total_steps}): {self.message}"


@dataclass(frozen=True)
class ValidationVerdict:
    """Result of scanning a response for poisoned scalar leaves."""

    poisoned_paths: tuple[str, ...] = ()

    @property
    def valid(self) -> bool:
        return not self.poisoned_paths

    @property
    def poisoned_count(self) -> int:
        return len(self.poisoned_paths)

    def __bool__(self) -> bool:
        return self.valid


@dataclass
class WorkflowOutcome:
    """Result of a full calibration workflow run."""

    success: bool = False
    completed_steps: list[str] = field(default_factory=list)
    error_kind: str | None = None
    message: str = ""
    last_response: Any = None
    warnings: list[str] = field(default_factory=list)
    progress: list[CalibrationProgress] = field(default_factory=list)

    @property
    def cancelled(self) -> bool:
        return self.error_kind == "CalibrationCancelled"

    @property
    def exit_code(self) -> int:
        if self.success:
            return EXIT_SUCCESS
        return EXIT_INTERRUPTED if self.cancelled else EXIT_FAILURE
