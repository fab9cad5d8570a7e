"""Core execution logic for the live test runner."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

from codegen_mvp.urls import resolve_url
from step_model.models import Step, StepType
from step_model.sequence import LoadedSequence, Opaque, Structured
from step_model.validation import validate_sequence
from testcase_store.store import RecordStore

from .models import ExecutionRecord, LiveRunResult, RunStatus, StepOutcome, StepResult
from .record_builder import ExecutionRecordBuilder
from .window import PLACEHOLDER_HTML, Accessibility, TestWindow, WindowError, WindowSource, WindowUnavailableError

# pylint: disable=too-many-return-statements,too-many-instance-attributes

WINDOW_UNAVAILABLE_MESSAGE = "Failed to open test window. Please allow popups for this site."
NO_STRUCTURED_STEPS_MESSAGE = ("No structured test steps found. "
                               "This test case may need to be edited to include step-by-step instructions.")
CROSS_ORIGIN_NOTICE = ("Note: Test window navigated to a different origin. "
                       "Some automated steps may require manual verification.")
CROSS_ORIGIN_WATCH = "cross-origin - watch the test window"

ProgressListener = Callable[[List[StepResult]], None]


@dataclass
# pylint: disable=too-few-public-methods
class StepDelays:
    """Fixed settle times in milliseconds, applied after each kind of action."""

    placeholder_ms: int = 500
    navigate_ms: int = 3000
    page_load_ms: int = 2000
    wait_ms: int = 1000
    click_ms: int = 500
    fill_ms: int = 300
    pacing_ms: int = 500


@dataclass
# pylint: disable=too-few-public-methods
class ExecutorSettings:
    """Runtime knobs for the executor."""

    delays: StepDelays = field(default_factory=StepDelays)
    base_url: Optional[str] = None
    log_dir: Optional[Path] = None


class _RunCancelled(Exception):
    """Unwinds the run loop after stop() or a closed window."""


class Executor:
    """Runs a step sequence live against a spawned test window.

    One run at a time per instance: calling ``run`` while another run of the
    same executor is active raises ``RuntimeError``.
    """

    def __init__(
        self,
        settings: Optional[ExecutorSettings] = None,
        record_store: Optional[RecordStore] = None,
        listener: Optional[ProgressListener] = None,
    ) -> None:
        self.settings = settings or ExecutorSettings()
        self.record_store = record_store
        self.listener = listener
        self.logger = logging.getLogger("executor_mvp")
        self._stop = threading.Event()
        self._active = threading.Lock()

    def stop(self) -> None:
        """Halt the active run at its next delay or window check."""
        self._stop.set()

    def run(
        self,
        test_case_id: str,
        sequence: Union[LoadedSequence, Sequence[Step]],
        window_source: WindowSource,
        base_url: Optional[str] = None,
    ) -> LiveRunResult:
        """Execute ``sequence`` in a window acquired from ``window_source``.

        Args:
            test_case_id: Id the execution record is filed under.
            sequence: Structured steps, or the result of ``load_sequence``.
            window_source: Owner of the browsing context for this run.
            base_url: Base for relative navigation; falls back to settings.

        Returns:
            The run outcome. Environment, step and persistence problems are
            reported here rather than raised.

        Raises:
            StepConfigurationError: When a step payload does not match its type.
        """
        if isinstance(sequence, Opaque):
            return LiveRunResult(status=RunStatus.ERROR, error=NO_STRUCTURED_STEPS_MESSAGE)
        raw_steps = sequence.steps if isinstance(sequence, Structured) else sequence
        steps = validate_sequence(raw_steps)
        if not steps:
            return LiveRunResult(status=RunStatus.ERROR, error=NO_STRUCTURED_STEPS_MESSAGE)

        if not self._active.acquire(blocking=False):
            raise RuntimeError("This executor already has an active run")
        self._stop.clear()
        log_handler = self._attach_run_logger(test_case_id)
        try:
            builder = ExecutionRecordBuilder(test_case_id, [step.label for step in steps])
            base = base_url or self.settings.base_url
            result: Optional[LiveRunResult] = None
            try:
                with window_source.open() as window:
                    result = self._drive(window, steps, builder, base)
            except WindowUnavailableError as exc:
                self.logger.error("Test window unavailable: %s", exc)
                return LiveRunResult(status=RunStatus.ERROR, results=builder.snapshot(),
                                     error=WINDOW_UNAVAILABLE_MESSAGE)
            except Exception as exc:  # pylint: disable=broad-except
                if result is None:
                    self.logger.exception("Test window could not be prepared")
                    return LiveRunResult(status=RunStatus.ERROR, results=builder.snapshot(),
                                         error=f"{WINDOW_UNAVAILABLE_MESSAGE} ({exc})")
                self.logger.warning("Releasing the test window failed: %s", exc)
            return result
        finally:
            if log_handler:
                self.logger.removeHandler(log_handler)
                log_handler.close()
            self._active.release()

    def _drive(self, window: TestWindow, steps: Sequence[Step], builder: ExecutionRecordBuilder,
               base_url: Optional[str]) -> LiveRunResult:
        notice: Optional[str] = None
        try:
            window.write_placeholder(PLACEHOLDER_HTML)
            self._pause(self.settings.delays.placeholder_ms)

            start_index = 0
            if steps[0].type == StepType.NAVIGATE:
                notice = self._navigate_up_front(window, steps[0], builder, base_url)
                start_index = 1

            for index in range(start_index, len(steps)):
                self._check_stopped()
                step = steps[index]
                self.logger.info("Step %s: %s", index + 1, step.type.value)
                builder.mark_running(index)
                self._notify(builder)

                started = time.monotonic()
                outcome = self._execute_step(window, step, base_url)
                builder.mark(index, outcome, _elapsed_ms(started))
                self._notify(builder)

                if not outcome.success and not outcome.cross_origin:
                    error = f"Test failed at step {index + 1}: {outcome.message}"
                    self.logger.warning("%s", error)
                    return self._complete(builder, error, notice)
                if not outcome.success:
                    self.logger.warning("Step %s needs manual verification: %s", index + 1, outcome.message)

                self._pause(self.settings.delays.pacing_ms)
        except _RunCancelled:
            self.logger.info("Run cancelled; no execution record saved")
            return LiveRunResult(status=RunStatus.CANCELLED, results=builder.snapshot(), notice=notice)
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.exception("Run crashed with unexpected error")
            message = f"Error executing test: {exc}"
            builder.fail_running(message)
            return self._complete(builder, message, notice, failed=True)

        return self._complete(builder, notice, notice)

    def _navigate_up_front(self, window: TestWindow, step: Step, builder: ExecutionRecordBuilder,
                           base_url: Optional[str]) -> Optional[str]:
        """Perform the leading navigate during setup and mark it passed."""
        url = resolve_url(step.url or "", base_url)
        builder.mark_running(0)
        self._notify(builder)
        started = time.monotonic()
        self.logger.info("Navigating to %s", url)
        try:
            window.navigate(url)
        except WindowError as exc:
            self.logger.warning("Initial navigation raised, continuing: %s", exc)
        self._pause(self.settings.delays.navigate_ms)

        access = self._probe(window)
        builder.mark(0, StepOutcome(True, f"Already navigated to {url}", access == Accessibility.CROSS_ORIGIN),
                     _elapsed_ms(started))
        self._notify(builder)
        if access == Accessibility.CROSS_ORIGIN:
            self.logger.warning(CROSS_ORIGIN_NOTICE)
            return CROSS_ORIGIN_NOTICE
        return None

    # pylint: disable=too-many-branches
    def _execute_step(self, window: TestWindow, step: Step, base_url: Optional[str]) -> StepOutcome:
        delays = self.settings.delays
        try:
            if step.type == StepType.NAVIGATE:
                return self._handle_navigate(window, step, base_url)

            if step.type in (StepType.ASSERT, StepType.CUSTOM):
                return StepOutcome(True, step.statement or "Assertion passed")

            if step.type == StepType.API_CALL:
                return StepOutcome(False, "API call steps are not executed by the live runner; use the generated code")

            if step.type == StepType.WAIT_FOR_PAGE_LOAD:
                self._pause(delays.page_load_ms)
                if self._probe(window) == Accessibility.CROSS_ORIGIN:
                    return StepOutcome(True, f"Waiting for page load ({CROSS_ORIGIN_WATCH})", cross_origin=True)
                return StepOutcome(True, "Page loaded")

            if step.type == StepType.WAIT:
                self._pause(delays.wait_ms)
                if self._probe(window) == Accessibility.CROSS_ORIGIN:
                    return StepOutcome(True, f"Waited for {step.selector} ({CROSS_ORIGIN_WATCH})", cross_origin=True)
                return StepOutcome(True, f"Waited for {step.selector}")

            access = self._probe(window)
            if step.type == StepType.CLICK:
                if access == Accessibility.CROSS_ORIGIN:
                    return StepOutcome(False, "Cannot access window (cross-origin). "
                                       "Please verify manually in the test window.", cross_origin=True)
                if not window.click(step.selector):
                    return StepOutcome(False, f"Element not found: {step.selector}")
                self._pause(delays.click_ms)
                return StepOutcome(True, f"Clicked {step.selector}")

            if step.type == StepType.FILL:
                if access == Accessibility.CROSS_ORIGIN:
                    return StepOutcome(False, "Cannot access window (cross-origin). "
                                       "Please fill manually in the test window.", cross_origin=True)
                if not window.fill(step.selector, step.value):
                    return StepOutcome(False, f"Element not found: {step.selector}")
                self._pause(delays.fill_ms)
                return StepOutcome(True, f"Filled {step.selector} with {step.value}")

            if step.type == StepType.VERIFY_ELEMENT:
                if access == Accessibility.CROSS_ORIGIN:
                    return StepOutcome(False, "Cannot verify element (cross-origin). "
                                       "Please verify manually in the test window.", cross_origin=True)
                if window.is_visible(step.selector):
                    return StepOutcome(True, f"Element found and visible: {step.selector}")
                return StepOutcome(False, f"Element not found or not visible: {step.selector}")
        except WindowError as exc:
            return StepOutcome(False, f"Error executing {step.type.value}: {exc}")

        return StepOutcome(False, f"Unknown step type: {step.type.value}")

    def _handle_navigate(self, window: TestWindow, step: Step, base_url: Optional[str]) -> StepOutcome:
        url = resolve_url(step.url or "", base_url)
        self.logger.info("Navigating to %s", url)
        try:
            window.navigate(url)
        except WindowError as exc:
            self.logger.warning("Navigation call raised: %s", exc)
            self._pause(self.settings.delays.navigate_ms)
            return StepOutcome(True, f"Navigation attempted to {url} ({CROSS_ORIGIN_WATCH} to verify)",
                               cross_origin=True)
        self._pause(self.settings.delays.navigate_ms)
        if self._probe(window) == Accessibility.CROSS_ORIGIN:
            return StepOutcome(True, f"Navigated to {url} ({CROSS_ORIGIN_WATCH})", cross_origin=True)
        return StepOutcome(True, f"Navigated to {url}")

    def _complete(self, builder: ExecutionRecordBuilder, error: Optional[str], notice: Optional[str],
                  failed: bool = False) -> LiveRunResult:
        record = builder.finalize(error, failed=failed)
        persisted = self._persist(record)
        return LiveRunResult(
            status=RunStatus(record.status),
            results=builder.snapshot(),
            record=record,
            error=error if record.status == RunStatus.FAILED.value and error != notice else None,
            notice=notice,
            persisted=persisted,
        )

    def _persist(self, record: ExecutionRecord) -> bool:
        if self.record_store is None:
            self.logger.debug("No record store configured; execution record not saved")
            return False
        try:
            self.record_store.append_execution(record.to_dict())
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.warning("Failed to save test execution results: %s", exc)
            return False
        return True

    def _probe(self, window: TestWindow) -> Accessibility:
        access = window.probe()
        if access == Accessibility.CLOSED:
            raise _RunCancelled()
        return access

    def _pause(self, milliseconds: int) -> None:
        if milliseconds > 0 and self._stop.wait(milliseconds / 1000):
            raise _RunCancelled()
        self._check_stopped()

    def _check_stopped(self) -> None:
        if self._stop.is_set():
            raise _RunCancelled()

    def _notify(self, builder: ExecutionRecordBuilder) -> None:
        if self.listener is None:
            return
        try:
            self.listener(builder.snapshot())
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.warning("Progress listener failed: %s", exc)

    def _attach_run_logger(self, test_case_id: str) -> Optional[logging.Handler]:
        if self.settings.log_dir is None:
            return None
        self.settings.log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        sanitized = str(test_case_id).replace(" ", "-") or "run"
        handler = logging.FileHandler(self.settings.log_dir / f"{timestamp}_{sanitized}.log", encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s | %(levelname)s | %(message)s"))
        self.logger.addHandler(handler)
        return handler


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
