"""Tests for the live executor, driven through a fake test window."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Set
from unittest.mock import MagicMock

import pytest

from executor_mvp.executor import (CROSS_ORIGIN_NOTICE, NO_STRUCTURED_STEPS_MESSAGE, WINDOW_UNAVAILABLE_MESSAGE,
                                   Executor, ExecutorSettings, StepDelays)
from executor_mvp.models import RunStatus, StepStatus
from executor_mvp.window import Accessibility, TestWindow, WindowSource, WindowUnavailableError
from step_model.models import StepConfigurationError
from step_model.sequence import Opaque, Structured, parse_steps

BASE = "http://app.test"


# ─── Fakes ───────────────────────────────────────────────────


class FakeWindow(TestWindow):
    """In-memory window; pages under ``foreign_prefixes`` are cross-origin."""

    def __init__(self, elements: Optional[Set[str]] = None, foreign_prefixes: tuple = ()) -> None:
        self.elements = set(elements or ())
        self.foreign_prefixes = foreign_prefixes
        self.state = Accessibility.ACCESSIBLE
        self.navigations: List[str] = []
        self.clicks: List[str] = []
        self.fills: Dict[str, str] = {}
        self.placeholder_written = False
        self.close_on_click = False
        self.raise_on_click: Optional[Exception] = None

    def probe(self) -> Accessibility:
        return self.state

    def write_placeholder(self, html: str) -> None:
        self.placeholder_written = True

    def navigate(self, url: str) -> None:
        self.navigations.append(url)
        if url.startswith(self.foreign_prefixes):
            self.state = Accessibility.CROSS_ORIGIN

    def click(self, selector: str) -> bool:
        if self.raise_on_click is not None:
            raise self.raise_on_click
        if self.close_on_click:
            self.state = Accessibility.CLOSED
        self.clicks.append(selector)
        return selector in self.elements

    def fill(self, selector: str, value: str) -> bool:
        if selector not in self.elements:
            return False
        self.fills[selector] = value
        return True

    def is_visible(self, selector: str) -> bool:
        return selector in self.elements

    def close(self) -> None:
        self.state = Accessibility.CLOSED


class FakeWindowSource(WindowSource):

    def __init__(self, window: Optional[FakeWindow] = None, unavailable: bool = False) -> None:
        self.window = window or FakeWindow()
        self.unavailable = unavailable
        self.opened = 0
        self.released = 0

    @contextmanager
    def open(self) -> Iterator[TestWindow]:
        self.opened += 1
        if self.unavailable:
            raise WindowUnavailableError("popup blocked")
        try:
            yield self.window
        finally:
            self.released += 1


def steps_of(*raw: dict) -> Structured:
    return Structured(steps=parse_steps([{"id": str(index), **item} for index, item in enumerate(raw)]))


@pytest.fixture
def store() -> MagicMock:
    return MagicMock()


@pytest.fixture
def executor(store: MagicMock) -> Executor:
    no_delays = StepDelays(placeholder_ms=0, navigate_ms=0, page_load_ms=0, wait_ms=0,
                           click_ms=0, fill_ms=0, pacing_ms=0)
    return Executor(settings=ExecutorSettings(delays=no_delays, base_url=BASE), record_store=store)


LOGIN = (
    {"type": "navigate", "url": "/login"},
    {"type": "fill", "selector": "#email", "value": "a@b.c"},
    {"type": "click", "selector": "#go"},
)


# ─── Normal runs ─────────────────────────────────────────────


def test_leading_navigate_runs_once_and_is_marked_passed(executor, store):
    source = FakeWindowSource(FakeWindow({"#email", "#go"}))

    result = executor.run("case-1", steps_of(*LOGIN), source)

    assert result.status == RunStatus.PASSED
    assert source.window.navigations == [f"{BASE}/login"]
    assert source.window.placeholder_written
    assert result.results[0].message == f"Already navigated to {BASE}/login"
    assert source.window.fills == {"#email": "a@b.c"}
    assert source.released == 1

    store.append_execution.assert_called_once()
    record = store.append_execution.call_args.args[0]
    assert record["testCaseId"] == "case-1"
    assert record["status"] == "passed"
    assert (record["totalSteps"], record["passedSteps"], record["failedSteps"]) == (3, 3, 0)
    assert record["errorMessage"] is None
    assert result.persisted


def test_later_navigate_is_executed(executor):
    source = FakeWindowSource(FakeWindow({"#go"}))
    result = executor.run("c", steps_of({"type": "click", "selector": "#go"}, {"type": "navigate", "url": "/next"}),
                          source)

    assert result.passed
    assert source.window.navigations == [f"{BASE}/next"]
    assert result.results[1].message == f"Navigated to {BASE}/next"


def test_assert_and_custom_steps_pass_without_evaluation(executor):
    result = executor.run("c", steps_of({"type": "assert", "action": "1 === 2"},
                                        {"type": "custom", "description": "Check the banner"}),
                          FakeWindowSource())
    assert [item.status for item in result.results] == [StepStatus.PASSED, StepStatus.PASSED]


def test_listener_sees_every_transition(store):
    snapshots = []
    executor = Executor(settings=ExecutorSettings(delays=StepDelays(0, 0, 0, 0, 0, 0, 0), base_url=BASE),
                        record_store=store, listener=snapshots.append)

    executor.run("c", steps_of(*LOGIN), FakeWindowSource(FakeWindow({"#email", "#go"})))

    assert len(snapshots) == 6
    assert [item.status for item in snapshots[2]] == [StepStatus.PASSED, StepStatus.RUNNING, StepStatus.PENDING]


# ─── Failures ────────────────────────────────────────────────


def test_failure_aborts_and_leaves_later_steps_pending(executor, store):
    source = FakeWindowSource(FakeWindow({"#email"}))
    steps = steps_of({"type": "navigate", "url": "/login"},
                     {"type": "click", "selector": "#missing"},
                     {"type": "fill", "selector": "#email", "value": "x"})

    result = executor.run("case-2", steps, source)

    assert result.status == RunStatus.FAILED
    assert [item.status for item in result.results] == [StepStatus.PASSED, StepStatus.FAILED, StepStatus.PENDING]
    assert result.error == "Test failed at step 2: Element not found: #missing"
    assert source.window.fills == {}

    store.append_execution.assert_called_once()
    record = store.append_execution.call_args.args[0]
    assert record["status"] == "failed"
    assert record["errorMessage"] == result.error
    assert (record["totalSteps"], record["passedSteps"], record["failedSteps"]) == (3, 1, 1)
    assert record["stepResults"][2] == {"step": "fill", "status": "pending"}


def test_api_call_is_a_plain_failure(executor):
    result = executor.run("c", steps_of({"type": "api_call", "method": "GET", "url": "/api"},
                                        {"type": "wait", "selector": "#a"}),
                          FakeWindowSource())
    assert result.status == RunStatus.FAILED
    assert result.results[1].status == StepStatus.PENDING


def test_cross_origin_failures_do_not_abort(executor, store):
    window = FakeWindow({"#go"}, foreign_prefixes=("https://sso.other",))
    steps = steps_of({"type": "navigate", "url": "https://sso.other/login"},
                     {"type": "click", "selector": "#go"},
                     {"type": "verifyElement", "selector": "#welcome"},
                     {"type": "wait", "selector": "#spinner"})

    result = executor.run("case-3", steps, FakeWindowSource(window))

    assert [item.status for item in result.results] == [
        StepStatus.PASSED, StepStatus.FAILED, StepStatus.FAILED, StepStatus.PASSED]
    assert result.results[1].cross_origin
    assert "cross-origin" in result.results[3].message
    assert window.clicks == []
    assert result.status == RunStatus.FAILED
    assert result.notice == CROSS_ORIGIN_NOTICE
    assert result.error is None
    assert store.append_execution.call_args.args[0]["errorMessage"] == CROSS_ORIGIN_NOTICE


def test_unexpected_error_is_captured_into_the_record(executor, store):
    window = FakeWindow({"#go"})
    window.raise_on_click = KeyError("boom")

    result = executor.run("c", steps_of({"type": "click", "selector": "#go"}), FakeWindowSource(window))

    assert result.status == RunStatus.FAILED
    assert result.results[0].status == StepStatus.FAILED
    assert result.results[0].message.startswith("Error executing test:")
    store.append_execution.assert_called_once()


def test_persistence_failure_does_not_change_the_outcome(executor, store):
    store.append_execution.side_effect = OSError("disk full")

    result = executor.run("c", steps_of(*LOGIN), FakeWindowSource(FakeWindow({"#email", "#go"})))

    assert result.status == RunStatus.PASSED
    assert not result.persisted
    assert result.record is not None


# ─── Environment and cancellation ────────────────────────────


def test_unavailable_window_reports_error_without_transitions(store):
    snapshots = []
    executor = Executor(settings=ExecutorSettings(delays=StepDelays(0, 0, 0, 0, 0, 0, 0)),
                        record_store=store, listener=snapshots.append)

    result = executor.run("c", steps_of(*LOGIN), FakeWindowSource(unavailable=True))

    assert result.status == RunStatus.ERROR
    assert result.error == WINDOW_UNAVAILABLE_MESSAGE
    assert all(item.status == StepStatus.PENDING for item in result.results)
    assert snapshots == []
    store.append_execution.assert_not_called()


def test_closed_window_cancels_without_saving(executor, store):
    window = FakeWindow({"#go"})
    window.close_on_click = True
    steps = steps_of({"type": "click", "selector": "#go"}, {"type": "verifyElement", "selector": "#go"})

    result = executor.run("c", steps, FakeWindowSource(window))

    assert result.status == RunStatus.CANCELLED
    assert result.record is None
    store.append_execution.assert_not_called()


def test_stop_halts_at_the_next_delay(store):
    executor = Executor(settings=ExecutorSettings(delays=StepDelays(0, 0, 0, 0, 0, 0, 0), base_url=BASE),
                        record_store=store)
    executor.listener = lambda snapshot: executor.stop() if snapshot[1].status == StepStatus.RUNNING else None

    result = executor.run("c", steps_of(*LOGIN), FakeWindowSource(FakeWindow({"#email", "#go"})))

    assert result.status == RunStatus.CANCELLED
    assert result.results[2].status == StepStatus.PENDING
    store.append_execution.assert_not_called()


def test_second_concurrent_run_is_rejected(executor):
    errors = []

    def reenter(_snapshot):
        try:
            executor.run("other", steps_of({"type": "assert", "action": "true"}), FakeWindowSource())
        except RuntimeError as exc:
            errors.append(exc)

    executor.listener = reenter
    executor.run("c", steps_of({"type": "assert", "action": "true"}), FakeWindowSource())

    assert errors and "active run" in str(errors[0])


# ─── Input checks ────────────────────────────────────────────


def test_opaque_sequence_never_opens_a_window(executor):
    source = FakeWindowSource()
    result = executor.run("c", Opaque(lines=("click the button",)), source)

    assert result.status == RunStatus.ERROR
    assert result.error == NO_STRUCTURED_STEPS_MESSAGE
    assert source.opened == 0


def test_configuration_error_propagates_before_setup(executor):
    source = FakeWindowSource()
    with pytest.raises(StepConfigurationError):
        executor.run("c", steps_of({"type": "click"}), source)
    assert source.opened == 0
