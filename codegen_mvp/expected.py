"""Expected-result text to assertion expression."""
from __future__ import annotations

import re
from typing import Optional

CODE_PREFIXES = ("true", "false", "page.", "driver.", "cy.", "await ", "expect(")

_COMPARISON_PATTERN = re.compile(r"^[a-zA-Z_$][a-zA-Z0-9_$]*\s*[!=<>]")
_STRING_LITERAL_PATTERN = re.compile(r"^['\"`]")


def looks_like_code(text: str) -> bool:
    trimmed = text.strip()
    if not trimmed:
        return False
    return (trimmed.startswith(CODE_PREFIXES) or bool(_COMPARISON_PATTERN.match(trimmed))
            or bool(_STRING_LITERAL_PATTERN.match(trimmed)))


def format_expected_result(text: Optional[str], language: Optional[str] = None) -> str:
    """Return a boolean expression for the expected result.

    Code-like text is kept (trimmed). Prose and empty text become the literal
    ``true``, spelled ``True`` for Python.
    """
    if text and looks_like_code(text):
        expression = text.strip()
        if language == "python" and expression in ("true", "false"):
            return expression.capitalize()
        return expression
    return "True" if language == "python" else "true"
