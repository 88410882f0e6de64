"""
Execution result schemas - what a launch hands back to the caller.

ExecutionResult is created per launch, returned to the caller and never
retained by the runner. StepOutcome records what happened to each step the
executor ran.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from .params import ParameterSet


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def _json_safe(value: Any) -> Any:
    """Value as-is when JSON can encode it, else its repr()."""
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return repr(value)
    return value


class BatchStatus(str, Enum):
    """Terminal status of a job or step execution."""
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    STOPPED = "STOPPED"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class StepOutcome:
    """
    The outcome of executing a single step.

    Attributes:
        step_name: Name of the step
        status: Terminal status of the step
        started_at: When the step started
        completed_at: When the step finished
        output: Whatever the step body returned
        error: {"type": ..., "message": ...} if status is FAILED
    """
    step_name: str
    status: BatchStatus
    started_at: datetime = field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None
    output: Any = None
    error: Optional[dict[str, str]] = None

    def __post_init__(self):
        if self.status == BatchStatus.FAILED and self.error is None:
            raise ValueError("Failed step outcomes must carry error details")

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "step_name": self.step_name,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
        }
        if self.completed_at:
            result["completed_at"] = self.completed_at.isoformat()
        if self.output is not None:
            result["output"] = _json_safe(self.output)
        if self.error:
            result["error"] = self.error
        return result


@dataclass(frozen=True)
class ExecutionResult:
    """
    Result of launching a job or a single step.

    Attributes:
        job_name: The job that was launched (synthetic name for step launches)
        status: Terminal status of the launch
        parameters: The ParameterSet the launch ran with
        step_outcomes: Outcome per executed step, in execution order
        started_at: When the launch started
        completed_at: When the launch finished
        exit_description: Free-text diagnostic, e.g. the failing step's error
    """
    job_name: str
    status: BatchStatus
    parameters: ParameterSet = field(default_factory=ParameterSet)
    step_outcomes: tuple[StepOutcome, ...] = ()
    started_at: datetime = field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None
    exit_description: str = ""

    def __post_init__(self):
        object.__setattr__(self, "step_outcomes", tuple(self.step_outcomes))

    @property
    def success(self) -> bool:
        return self.status == BatchStatus.COMPLETED

    @property
    def failed_steps(self) -> list[StepOutcome]:
        return [o for o in self.step_outcomes if o.status == BatchStatus.FAILED]

    @property
    def duration_ms(self) -> Optional[int]:
        if self.completed_at is None:
            return None
        return int((self.completed_at - self.started_at).total_seconds() * 1000)

    def get_outcome(self, step_name: str) -> Optional[StepOutcome]:
        """Get the outcome of a step by name."""
        for outcome in self.step_outcomes:
            if outcome.step_name == step_name:
                return outcome
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON output."""
        result: dict[str, Any] = {
            "job_name": self.job_name,
            "status": self.status.value,
            "parameters": self.parameters.to_properties(),
            "started_at": self.started_at.isoformat(),
            "steps": [o.to_dict() for o in self.step_outcomes],
        }
        if self.completed_at:
            result["completed_at"] = self.completed_at.isoformat()
            result["duration_ms"] = self.duration_ms
        if self.exit_description:
            result["exit_description"] = self.exit_description
        return result
