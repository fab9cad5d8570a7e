"""Request and response models for test case generation."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

DEFAULT_REDIRECT_PAGE_URL = "/login"


@dataclass
class GenerationRequest:
    """What the user asked test cases for."""

    statement: str
    framework: str = "jest"
    language: str = "typescript"
    requires_login: bool = False
    target_page_url: str = ""
    redirect_page_url: str = DEFAULT_REDIRECT_PAGE_URL

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenerationRequest":
        return cls(
            statement=str(data.get("statement") or "").strip(),
            framework=data.get("framework") or "jest",
            language=data.get("language") or "typescript",
            requires_login=bool(data.get("requiresLogin") or False),
            target_page_url=data.get("targetPageUrl") or "",
            redirect_page_url=data.get("redirectPageUrl") or DEFAULT_REDIRECT_PAGE_URL,
        )


@dataclass
class GeneratedCase:
    name: str
    description: str = ""
    steps: List[str] = field(default_factory=list)
    expected_result: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GeneratedCase":
        return cls(
            name=str(data.get("name") or "").strip(),
            description=str(data.get("description") or ""),
            steps=[str(step) for step in data.get("steps") or []],
            expected_result=str(data.get("expectedResult") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "steps": list(self.steps),
            "expectedResult": self.expected_result,
        }


@dataclass
class GenerationResponse:
    """Generated cases plus an optional warning or error explaining a fallback."""

    test_cases: List[GeneratedCase] = field(default_factory=list)
    warning: Optional[str] = None
    error: Optional[str] = None

    @property
    def used_fallback(self) -> bool:
        return self.warning is not None or self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"testCases": [case.to_dict() for case in self.test_cases]}
        if self.warning:
            data["warning"] = self.warning
        if self.error:
            data["error"] = self.error
        return data
