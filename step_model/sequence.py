"""Loading and dumping step sequences in their transport form.

A stored test case keeps its steps as a list of strings. When the first string
is a serialized step array the case is *structured*; the strings after it are
the code lines generated for it. Any other list is a legacy list of free-form
textual steps.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Tuple, Union

from .models import Step, StepConfigurationError, steps_to_dicts


@dataclass(frozen=True)
class Structured:
    """Steps recovered from a serialized step array."""

    steps: Tuple[Step, ...]
    code_lines: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Opaque:
    """Free-form textual steps with no structure."""

    lines: Tuple[str, ...]


LoadedSequence = Union[Structured, Opaque]


def load_sequence(lines: Sequence[str]) -> LoadedSequence:
    """Classify a transported step list.

    Only the first entry is inspected. It must start with ``[`` and decode to a
    non-empty JSON array of step objects for the result to be structured. The
    steps themselves are not validated here; engines validate before use.

    Raises:
        StepConfigurationError: When the array decodes but one of its entries
            is not a step (unknown type, not an object).
    """
    items = [line for line in lines if isinstance(line, str)]
    if not items:
        return Opaque(lines=())

    head = items[0].strip()
    if head.startswith("["):
        try:
            parsed = json.loads(head)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list) and parsed:
            steps = tuple(Step.from_dict(raw) for raw in parsed)
            return Structured(steps=steps, code_lines=tuple(items[1:]))
        if isinstance(parsed, list):
            return Opaque(lines=tuple(items[1:]))

    return Opaque(lines=tuple(items))


def parse_steps(raw_steps: Iterable[object]) -> Tuple[Step, ...]:
    """Build steps from already decoded step objects."""
    steps = []
    for raw in raw_steps:
        if not isinstance(raw, dict):
            raise StepConfigurationError("Each step must be an object")
        steps.append(Step.from_dict(raw))
    return tuple(steps)


def dump_sequence(steps: Sequence[Step], code_lines: Iterable[str] = ()) -> List[str]:
    """Produce the transport list: serialized steps followed by code lines."""
    serialized = json.dumps(steps_to_dicts(list(steps)), ensure_ascii=False)
    return [serialized, *code_lines]
