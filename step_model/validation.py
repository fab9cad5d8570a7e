"""Payload validation for test steps."""
from __future__ import annotations

import json
from typing import Dict, FrozenSet, Iterable, Optional

from .models import LOAD_STATES, Step, StepConfigurationError, StepType

PAYLOAD_FIELDS = ("url", "selector", "value", "method", "headers", "body", "expected_status")

REQUIRED_FIELDS: Dict[StepType, FrozenSet[str]] = {
    StepType.NAVIGATE: frozenset({"url"}),
    StepType.CLICK: frozenset({"selector"}),
    StepType.FILL: frozenset({"selector", "value"}),
    StepType.WAIT: frozenset({"selector"}),
    StepType.WAIT_FOR_PAGE_LOAD: frozenset(),
    StepType.VERIFY_ELEMENT: frozenset({"selector"}),
    StepType.ASSERT: frozenset(),
    StepType.CUSTOM: frozenset(),
    StepType.API_CALL: frozenset({"method", "url"}),
}

OPTIONAL_FIELDS: Dict[StepType, FrozenSet[str]] = {
    StepType.API_CALL: frozenset({"headers", "body", "expected_status"}),
}


def validate_step(step: Step, position: Optional[int] = None) -> Step:
    """Check that the payload of ``step`` matches its type.

    Args:
        step: The step to check.
        position: Zero-based index in its sequence, used in error messages.

    Returns:
        The same step, so calls can be chained.

    Raises:
        StepConfigurationError: When a required field is missing, a field
            belonging to another step type is set, or a value is malformed.
    """
    where = _where(step, position)
    required = REQUIRED_FIELDS[step.type]
    allowed = required | OPTIONAL_FIELDS.get(step.type, frozenset())

    for name in sorted(required):
        if getattr(step, name) is None:
            raise StepConfigurationError(f"{where}: {step.type.value} step missing '{name}'")

    for name in PAYLOAD_FIELDS:
        if name not in allowed and getattr(step, name) is not None:
            raise StepConfigurationError(f"{where}: '{name}' is not valid on a {step.type.value} step")

    if step.type in (StepType.ASSERT, StepType.CUSTOM) and not step.statement:
        raise StepConfigurationError(f"{where}: {step.type.value} step requires 'action' or 'description'")

    if step.type == StepType.WAIT_FOR_PAGE_LOAD and step.action and step.action.strip() not in LOAD_STATES:
        raise StepConfigurationError(
            f"{where}: unsupported load state '{step.action}' (expected one of {', '.join(LOAD_STATES)})")

    if step.type == StepType.API_CALL:
        _check_api_call(step, where)

    return step


def validate_sequence(steps: Iterable[Step]) -> tuple[Step, ...]:
    """Validate every step and the uniqueness of ids within the sequence."""
    seen: Dict[str, int] = {}
    validated = []
    for position, step in enumerate(steps):
        validate_step(step, position)
        if step.id:
            if step.id in seen:
                raise StepConfigurationError(
                    f"Step {position + 1}: duplicate id '{step.id}' (first used by step {seen[step.id] + 1})")
            seen[step.id] = position
        validated.append(step)
    return tuple(validated)


def _check_api_call(step: Step, where: str) -> None:
    if step.headers is not None:
        try:
            headers = json.loads(step.headers)
        except json.JSONDecodeError as exc:
            raise StepConfigurationError(f"{where}: 'headers' is not valid JSON ({exc.msg})") from exc
        if not isinstance(headers, dict):
            raise StepConfigurationError(f"{where}: 'headers' must be a JSON object")
    if step.body is not None:
        try:
            json.loads(step.body)
        except json.JSONDecodeError as exc:
            raise StepConfigurationError(f"{where}: 'body' is not valid JSON ({exc.msg})") from exc
    if step.expected_status is not None and not step.expected_status.strip().isdigit():
        raise StepConfigurationError(f"{where}: 'expectedStatus' must be an HTTP status code")


def _where(step: Step, position: Optional[int]) -> str:
    if position is None:
        return f"Step '{step.id or step.type.value}'"
    return f"Step {position + 1}"
