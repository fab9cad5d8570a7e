"""Stored test case model."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from step_model.sequence import dump_sequence, parse_steps

CASE_TYPES = ("WEB", "API")

# Python attribute -> transport key
_FIELD_KEYS = {
    "id": "id",
    "name": "name",
    "description": "description",
    "steps": "steps",
    "expected_result": "expectedResult",
    "framework": "framework",
    "language": "language",
    "statement": "statement",
    "requires_login": "requiresLogin",
    "target_page_url": "targetPageUrl",
    "redirect_page_url": "redirectPageUrl",
    "base_url": "baseUrl",
    "tags": "tags",
    "generated_code": "generatedCode",
    "type": "type",
    "user_id": "userId",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}

# Keys a client may set through create/update.
EDITABLE_KEYS = tuple(
    key for attr, key in _FIELD_KEYS.items() if attr not in ("id", "user_id", "created_at", "updated_at")
)


@dataclass
class SavedTestCase:
    """A test case as kept by the record store.

    ``steps`` holds the transport form: the serialized step array as its first
    element (when the case was built from structured steps) followed by the
    generated code lines, or plain textual steps.
    """

    id: str
    name: str
    framework: str
    language: str
    description: str = ""
    steps: List[str] = field(default_factory=list)
    expected_result: str = ""
    statement: Optional[str] = None
    requires_login: bool = False
    target_page_url: Optional[str] = None
    redirect_page_url: Optional[str] = None
    base_url: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    generated_code: Optional[str] = None
    type: str = "WEB"
    user_id: str = "anonymous"
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SavedTestCase":
        kwargs: Dict[str, Any] = {}
        for attr, key in _FIELD_KEYS.items():
            if key in data and data[key] is not None:
                kwargs[attr] = data[key]
        kwargs.setdefault("id", "")
        kwargs.setdefault("name", "")
        kwargs.setdefault("framework", "")
        kwargs.setdefault("language", "")
        kwargs["steps"] = transport_steps(kwargs.get("steps", []))
        kwargs["tags"] = [str(item) for item in kwargs.get("tags", [])]
        kwargs["requires_login"] = bool(kwargs.get("requires_login", False))
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {key: getattr(self, attr) for attr, key in _FIELD_KEYS.items()}


def transport_steps(raw_steps: List[Any]) -> List[str]:
    """Stored form of a step list.

    Step objects are serialized into the leading step array so the case stays
    structured; string lists are kept as they are.
    """
    if any(isinstance(item, dict) for item in raw_steps):
        return dump_sequence(parse_steps(raw_steps))
    return [str(item) for item in raw_steps]


def editable_fields(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only the client-settable keys of a request payload."""
    return {key: value for key, value in payload.items() if key in EDITABLE_KEYS}
