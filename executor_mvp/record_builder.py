"""Builds the execution record of a live run step by step."""
from __future__ import annotations

import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from .models import ExecutionRecord, StepOutcome, StepResult, StepStatus


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ExecutionRecordBuilder:
    """Owns the per-step results of one run.

    The record starts as a shell with every step pending. Each step moves
    ``pending -> running -> passed|failed`` exactly once; counts are always
    computed from the current list when the record is finalized.
    """

    def __init__(self, test_case_id: str, labels: Iterable[str]) -> None:
        self.test_case_id = test_case_id
        self._results: List[StepResult] = [StepResult(step=label) for label in labels]
        self.started_at = utc_now_iso()
        self._started_monotonic = time.monotonic()
        self._finalized: Optional[ExecutionRecord] = None

    @property
    def total_steps(self) -> int:
        return len(self._results)

    def mark_running(self, index: int) -> None:
        result = self._results[index]
        if result.status != StepStatus.PENDING:
            raise ValueError(f"Step {index + 1} is {result.status.value}, cannot start it")
        result.status = StepStatus.RUNNING

    def mark(self, index: int, outcome: StepOutcome, duration_ms: int) -> StepResult:
        result = self._results[index]
        if result.status != StepStatus.RUNNING:
            raise ValueError(f"Step {index + 1} is {result.status.value}, cannot record an outcome")
        result.status = StepStatus.PASSED if outcome.success else StepStatus.FAILED
        result.message = outcome.message
        result.duration = duration_ms
        result.cross_origin = outcome.cross_origin
        return replace(result)

    def fail_running(self, message: str) -> None:
        """Mark whichever step is still running as failed."""
        for result in self._results:
            if result.status == StepStatus.RUNNING:
                result.status = StepStatus.FAILED
                result.message = message

    def snapshot(self) -> List[StepResult]:
        return [replace(result) for result in self._results]

    def count(self, status: StepStatus) -> int:
        return sum(1 for result in self._results if result.status == status)

    def finalize(self, error_message: Optional[str] = None, failed: bool = False) -> ExecutionRecord:
        """Close the record. Status is failed when any step failed or ``failed`` is set."""
        if self._finalized is not None:
            raise ValueError("Execution record already finalized")
        failed_steps = self.count(StepStatus.FAILED)
        elapsed_ms = int((time.monotonic() - self._started_monotonic) * 1000)
        self._finalized = ExecutionRecord(
            test_case_id=self.test_case_id,
            status=StepStatus.FAILED.value if failed or failed_steps else StepStatus.PASSED.value,
            started_at=self.started_at,
            completed_at=utc_now_iso(),
            duration_ms=elapsed_ms,
            total_steps=self.total_steps,
            passed_steps=self.count(StepStatus.PASSED),
            failed_steps=failed_steps,
            error_message=error_message,
            step_results=self.snapshot(),
        )
        return self._finalized
