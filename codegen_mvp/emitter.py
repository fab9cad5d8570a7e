"""Step sequence to framework source text."""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from step_model.models import Step, StepType

from .models import Target
from .rules import renderer_for

logger = logging.getLogger("codegen_mvp.emitter")

# Field quoted in the fallback comment so the step stays recognizable.
_DEFINING_FIELD = {
    StepType.NAVIGATE: "url",
    StepType.CLICK: "selector",
    StepType.FILL: "selector",
    StepType.WAIT: "selector",
    StepType.WAIT_FOR_PAGE_LOAD: "load_state",
    StepType.VERIFY_ELEMENT: "selector",
    StepType.API_CALL: "url",
}


def emit_step(step: Step, target: Target, index: int, base_url: Optional[str] = None) -> str:
    """Translate one step into code for ``target``.

    Never raises for a malformed step or an unsupported target; both produce a
    comment line carrying the step description.
    """
    renderer = renderer_for(target)
    if renderer is not None:
        try:
            code = renderer.render(step, index, base_url)
        except ValueError as exc:
            logger.warning("Step %s could not be rendered for %s: %s", index + 1, target, exc)
            code = None
        if code:
            return code
    return fallback_comment(step, target)


def emit(sequence: Iterable[Step], target: Target, base_url: Optional[str] = None) -> str:
    """Emit the whole sequence, one step after another, in order."""
    return "\n".join(emit_lines(sequence, target, base_url))


def emit_lines(sequence: Iterable[Step], target: Target, base_url: Optional[str] = None) -> List[str]:
    return [emit_step(step, target, index, base_url) for index, step in enumerate(sequence)]


def fallback_comment(step: Step, target: Target) -> str:
    text = step.label
    if step.type == StepType.API_CALL:
        text = f"API Call: {step.http_method} {step.url or ''}".rstrip()
    elif step.type in (StepType.ASSERT, StepType.CUSTOM) and step.statement and step.statement != text:
        text = f"{text}: {step.statement}"
    else:
        field_name = _DEFINING_FIELD.get(step.type)
        detail = getattr(step, field_name) if field_name else None
        if detail and detail not in text:
            text = f"{text} ({detail})"
    return f"{target.comment_prefix} {' '.join(text.splitlines())}"
