"""Base URL configuration and relative URL resolution."""
from __future__ import annotations

import os
import re
from typing import Optional

DEFAULT_BASE_URL = "http://localhost:3000"

_SCHEME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")


def default_base_url() -> str:
    return os.getenv("TESTGEN_BASE_URL") or DEFAULT_BASE_URL


def is_absolute(url: str) -> bool:
    return bool(_SCHEME_PATTERN.match(url))


def resolve_url(url: str, base_url: Optional[str] = None) -> str:
    """Resolve ``url`` against ``base_url``.

    Absolute URLs (anything with a scheme) are returned unchanged. Relative
    paths get exactly one slash between the base, stripped of trailing
    slashes, and the path.
    """
    target = url.strip()
    if is_absolute(target):
        return target
    base = (base_url or default_base_url()).rstrip("/")
    path = target if target.startswith("/") else f"/{target}"
    return f"{base}{path}"
