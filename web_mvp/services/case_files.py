"""Test file rendering and service lookup for the HTTP API."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from flask import current_app

from codegen_mvp.emitter import emit_lines
from codegen_mvp.models import CaseDocument, GeneratedFile, Target
from codegen_mvp.templates import build_test_file
from generator_mvp.generator import TestCaseGenerator
from step_model.sequence import Structured, dump_sequence
from step_model.validation import validate_sequence
from testcase_store.models import transport_steps
from testcase_store.store import RecordStore

LOGGER = logging.getLogger("web_mvp.case_files")

STORE_EXTENSION = "record_store"
GENERATOR_EXTENSION = "test_case_generator"

# Changing any of these invalidates the stored generated code.
CODE_AFFECTING_KEYS = ("name", "description", "steps", "expectedResult", "framework", "language", "baseUrl")


def get_store() -> RecordStore:
    return current_app.extensions[STORE_EXTENSION]


def get_generator() -> TestCaseGenerator:
    return current_app.extensions[GENERATOR_EXTENSION]


def render_case_file(
    data: Dict[str, Any],
    framework: Optional[str] = None,
    language: Optional[str] = None,
) -> GeneratedFile:
    """Render a test file for a case payload.

    The payload's own framework/language win over the defaults passed in.

    Raises:
        ValueError: When no target can be determined or the steps cannot be read.
    """
    target = Target(data.get("framework") or framework or "", data.get("language") or language or "")
    if not target.framework or not target.language:
        raise ValueError("framework and language are required")
    generated = build_test_file(CaseDocument.from_dict(data), target)
    LOGGER.info("Rendered %s for %s", generated.filename, target)
    return generated


def validate_case_steps(data: Dict[str, Any]) -> None:
    """Reject structured steps whose payload does not match their type."""
    document = CaseDocument.from_dict(data)
    if isinstance(document.sequence, Structured):
        validate_sequence(document.sequence.steps)


def generated_code_for(data: Dict[str, Any]) -> str:
    return render_case_file(data).content


def stored_steps(data: Dict[str, Any]) -> List[str]:
    """Steps in their stored form.

    Structured steps are kept as the serialized step array followed by the
    code emitted for the case's own framework and language.
    """
    document = CaseDocument.from_dict(data)
    if not isinstance(document.sequence, Structured):
        return transport_steps(data.get("steps") or [])
    target = Target(data.get("framework") or "", data.get("language") or "")
    steps = document.sequence.steps
    return dump_sequence(steps, emit_lines(steps, target, document.base_url))
