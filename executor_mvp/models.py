"""Data models for the live executor."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (StepStatus.PASSED, StepStatus.FAILED)


class RunStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    ERROR = "error"


@dataclass(frozen=True)
class StepOutcome:
    """What a step handler reports back to the run loop.

    ``cross_origin`` marks outcomes that are limited only by the same-origin
    policy; a failure carrying it does not end the run.
    """

    success: bool
    message: str
    cross_origin: bool = False


@dataclass
class StepResult:
    """Captures outcome data for a single step."""

    step: str
    status: StepStatus = StepStatus.PENDING
    message: Optional[str] = None
    duration: Optional[int] = None
    cross_origin: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"step": self.step, "status": self.status.value}
        if self.message is not None:
            data["message"] = self.message
        if self.duration is not None:
            data["duration"] = self.duration
        return data


@dataclass
class ExecutionRecord:
    """Persistable summary of one live run."""

    test_case_id: str
    status: str
    started_at: str
    completed_at: str
    duration_ms: int
    total_steps: int
    passed_steps: int
    failed_steps: int
    error_message: Optional[str] = None
    step_results: List[StepResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "testCaseId": self.test_case_id,
            "status": self.status,
            "startedAt": self.started_at,
            "completedAt": self.completed_at,
            "durationMs": self.duration_ms,
            "totalSteps": self.total_steps,
            "passedSteps": self.passed_steps,
            "failedSteps": self.failed_steps,
            "errorMessage": self.error_message,
            "stepResults": [result.to_dict() for result in self.step_results],
        }


@dataclass
class LiveRunResult:
    """Returned by ``Executor.run``; never raised through."""

    status: RunStatus
    results: List[StepResult] = field(default_factory=list)
    record: Optional[ExecutionRecord] = None
    error: Optional[str] = None
    notice: Optional[str] = None
    persisted: bool = False

    @property
    def passed(self) -> bool:
        return self.status == RunStatus.PASSED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "results": [result.to_dict() for result in self.results],
            "record": self.record.to_dict() if self.record else None,
            "error": self.error,
            "notice": self.notice,
            "persisted": self.persisted,
        }
