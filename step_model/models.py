"""Data models for the shared test step vocabulary."""
from __future__ import annotations

import json
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, List, Optional


class StepConfigurationError(ValueError):
    """Raised when a step payload does not match its declared type."""


class StepType(str, Enum):
    """Kinds of actions a step can describe."""

    NAVIGATE = "navigate"
    CLICK = "click"
    FILL = "fill"
    WAIT = "wait"
    WAIT_FOR_PAGE_LOAD = "waitForPageLoad"
    VERIFY_ELEMENT = "verifyElement"
    ASSERT = "assert"
    CUSTOM = "custom"
    API_CALL = "api_call"


LOAD_STATES = ("networkidle", "load", "domcontentloaded")
DEFAULT_LOAD_STATE = "networkidle"

# Maps python attribute names to the camelCase keys used on the wire.
_WIRE_KEYS = {"expected_status": "expectedStatus"}


@dataclass(frozen=True)
class Step:
    """Represents a single action in a test sequence."""

    id: str
    type: StepType
    description: str = ""
    url: Optional[str] = None
    selector: Optional[str] = None
    value: Optional[str] = None
    action: Optional[str] = None
    method: Optional[str] = None
    headers: Optional[str] = None
    body: Optional[str] = None
    expected_status: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Step":
        if not isinstance(raw, dict):
            raise StepConfigurationError("Each step must be an object")
        raw_type = raw.get("type")
        try:
            step_type = StepType(raw_type)
        except ValueError as exc:
            raise StepConfigurationError(f"Unknown step type: {raw_type!r}") from exc

        values: Dict[str, Any] = {}
        for item in fields(cls):
            if item.name in ("id", "type", "description"):
                continue
            value = raw.get(_WIRE_KEYS.get(item.name, item.name))
            values[item.name] = _text_or_none(value)

        return cls(
            id=str(raw.get("id") or ""),
            type=step_type,
            description=str(raw.get("description") or ""),
            **values,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "type": self.type.value, "description": self.description}
        for item in fields(self):
            if item.name in data:
                continue
            value = getattr(self, item.name)
            if value is not None:
                data[_WIRE_KEYS.get(item.name, item.name)] = value
        return data

    @property
    def label(self) -> str:
        """Text shown for this step in results and comments."""
        return self.description or self.type.value

    @property
    def statement(self) -> Optional[str]:
        """Condition or code carried by assert/custom steps."""
        return self.action or self.description or None

    @property
    def load_state(self) -> str:
        for candidate in (self.action, self.description):
            if candidate and candidate.strip() in LOAD_STATES:
                return candidate.strip()
        return DEFAULT_LOAD_STATE

    @property
    def http_method(self) -> str:
        return (self.method or "GET").upper()

    @property
    def status_code(self) -> str:
        return self.expected_status or "200"


@dataclass(frozen=True)
class StepTemplate:
    """Editor defaults for a step type."""

    type: StepType
    description: str
    placeholder: str


STEP_TEMPLATES: Dict[StepType, StepTemplate] = {
    StepType.NAVIGATE: StepTemplate(StepType.NAVIGATE, "Navigate to URL", "https://example.com"),
    StepType.CLICK: StepTemplate(StepType.CLICK, "Click element", '[data-testid="login-submit"]'),
    StepType.FILL: StepTemplate(StepType.FILL, "Fill input field", '[data-testid="login-email"]'),
    StepType.WAIT: StepTemplate(StepType.WAIT, "Wait for element", '[data-testid="loading"]'),
    StepType.WAIT_FOR_PAGE_LOAD: StepTemplate(StepType.WAIT_FOR_PAGE_LOAD, "Wait for page to load", "networkidle or load"),
    StepType.VERIFY_ELEMENT: StepTemplate(StepType.VERIFY_ELEMENT, "Verify element exists", '[data-testid="login-email"]'),
    StepType.ASSERT: StepTemplate(StepType.ASSERT, "Assert condition", 'Page title contains "Dashboard"'),
    StepType.CUSTOM: StepTemplate(StepType.CUSTOM, "Custom code", 'await page.waitForLoadState("networkidle")'),
    StepType.API_CALL: StepTemplate(StepType.API_CALL, "Make API Call", "GET https://api.example.com"),
}


def steps_to_dicts(steps: List[Step]) -> List[Dict[str, Any]]:
    return [step.to_dict() for step in steps]


def _text_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        # headers/body may arrive already decoded
        return json.dumps(value, ensure_ascii=False)
    text = str(value)
    return text if text.strip() else None
