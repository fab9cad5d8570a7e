"""Selector classification and string literal quoting for emitted code."""
from __future__ import annotations

from enum import Enum
from typing import Tuple


class SelectorKind(str, Enum):
    ID = "id"
    CLASS = "class"
    CSS = "css"


def classify_selector(selector: str) -> Tuple[SelectorKind, str]:
    """Classify a selector by its leading character.

    ``#name`` becomes an id locator and ``.name`` a class locator, with the
    prefix stripped. Everything else is passed on unchanged as css. The leading
    character alone decides; the rest of the selector is never parsed.
    """
    if selector.startswith("#"):
        return SelectorKind.ID, selector[1:]
    if selector.startswith("."):
        return SelectorKind.CLASS, selector[1:]
    return SelectorKind.CSS, selector


def quote_single(text: str) -> str:
    """Single-quoted literal valid in JavaScript, TypeScript and Python."""
    escaped = (text.replace("\\", "\\\\").replace("'", "\\'").replace("\n", "\\n").replace("\r", "\\r"))
    return f"'{escaped}'"


def quote_double(text: str) -> str:
    """Double-quoted Java string literal."""
    escaped = (text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n").replace("\r", "\\r"))
    return f'"{escaped}"'


def js_by(selector: str) -> str:
    """selenium-webdriver (JS/TS) locator expression."""
    kind, value = classify_selector(selector)
    if kind == SelectorKind.ID:
        return f"By.id({quote_single(value)})"
    if kind == SelectorKind.CLASS:
        return f"By.className({quote_single(value)})"
    return f"By.css({quote_single(value)})"


def python_by(selector: str) -> str:
    """Selenium Python ``(By.X, value)`` argument pair, without parentheses."""
    kind, value = classify_selector(selector)
    if kind == SelectorKind.ID:
        return f"By.ID, {quote_single(value)}"
    if kind == SelectorKind.CLASS:
        return f"By.CLASS_NAME, {quote_single(value)}"
    return f"By.CSS_SELECTOR, {quote_single(value)}"


def java_by(selector: str) -> str:
    """Selenium Java locator expression."""
    kind, value = classify_selector(selector)
    if kind == SelectorKind.ID:
        return f"By.id({quote_double(value)})"
    if kind == SelectorKind.CLASS:
        return f"By.className({quote_double(value)})"
    return f"By.cssSelector({quote_double(value)})"
