"""Data structures used by the code emitter."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from step_model.sequence import LoadedSequence, Opaque, Structured, load_sequence, parse_steps

FRAMEWORKS = ("playwright", "selenium", "cypress", "jest", "mocha", "vitest")
LANGUAGES = ("typescript", "javascript", "python", "java")

FILE_EXTENSIONS = {
    "typescript": "ts",
    "javascript": "js",
    "python": "py",
    "java": "java",
}


@dataclass(frozen=True)
class Target:
    """A (framework, language) pair selecting the emitted idiom."""

    framework: str
    language: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "framework", (self.framework or "").strip().lower())
        object.__setattr__(self, "language", (self.language or "").strip().lower())

    @property
    def comment_prefix(self) -> str:
        return "#" if self.language == "python" else "//"

    @property
    def extension(self) -> str:
        return FILE_EXTENSIONS.get(self.language, "js")

    def __str__(self) -> str:
        return f"{self.framework}/{self.language}"


@dataclass
class CaseDocument:
    """Everything needed to render one test file."""

    name: str
    description: str = ""
    expected_result: str = ""
    sequence: LoadedSequence = field(default_factory=lambda: Opaque(lines=()))
    base_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_url: Optional[str] = None) -> "CaseDocument":
        """Build from a test case payload whose steps are transport lines or step objects."""
        raw_steps = data.get("steps") or []
        if not isinstance(raw_steps, list):
            raise ValueError("steps must be an array")
        if all(isinstance(item, str) for item in raw_steps):
            sequence: LoadedSequence = load_sequence(raw_steps)
        else:
            sequence = Structured(steps=parse_steps(raw_steps))
        return cls(
            name=data.get("name") or "Generated test",
            description=data.get("description") or "",
            expected_result=data.get("expectedResult") or "",
            sequence=sequence,
            base_url=base_url or data.get("baseUrl") or data.get("targetPageUrl") or None,
        )


@dataclass
class GeneratedFile:
    """A rendered test file ready for download."""

    filename: str
    content: str
