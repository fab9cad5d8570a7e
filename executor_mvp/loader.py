"""Helpers for loading step sequences to run."""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from step_model.sequence import LoadedSequence, Structured, load_sequence, parse_steps
from testcase_store.store import RecordStore


@dataclass
class RunTarget:
    """A sequence plus the identifiers the run record needs."""

    test_case_id: str
    sequence: LoadedSequence
    base_url: Optional[str] = None
    name: str = ""


def _ensure_path(source: Any) -> Path:
    if isinstance(source, (str, Path)):
        return Path(source)
    raise TypeError(f"Unsupported path type: {type(source)!r}")


def load_json(source: Any) -> Any:
    path = _ensure_path(source)
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def sequence_from_raw(raw_steps: Any) -> LoadedSequence:
    """Accept either transport lines or a bare list of step objects."""
    if not isinstance(raw_steps, list):
        raise ValueError("Steps must be a JSON array")
    if raw_steps and all(isinstance(item, str) for item in raw_steps):
        return load_sequence(raw_steps)
    return Structured(steps=parse_steps(raw_steps))


def load_steps_file(source: Any, test_case_id: Optional[str] = None) -> RunTarget:
    """Load a JSON file holding a step array or a test case object."""
    path = _ensure_path(source)
    raw = load_json(path)
    if isinstance(raw, list):
        return RunTarget(test_case_id=test_case_id or path.stem, sequence=sequence_from_raw(raw), name=path.stem)
    if not isinstance(raw, dict):
        raise ValueError(f"{path} must hold a JSON array of steps or a test case object")
    return RunTarget(
        test_case_id=test_case_id or raw.get("id") or path.stem,
        sequence=sequence_from_raw(raw.get("steps") or []),
        base_url=raw.get("baseUrl") or raw.get("targetPageUrl") or None,
        name=raw.get("name") or path.stem,
    )


def load_stored_case(store: RecordStore, case_id: str) -> RunTarget:
    case = store.get_by_id(case_id)
    if case is None:
        raise FileNotFoundError(f"Test case '{case_id}' not found")
    return RunTarget(
        test_case_id=case.id,
        sequence=load_sequence(case.steps),
        base_url=case.base_url or case.target_page_url,
        name=case.name,
    )
