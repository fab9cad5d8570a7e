"""Response formatting helpers for the HTTP API."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from codegen_mvp.models import GeneratedFile
from testcase_store.models import SavedTestCase

DEFAULT_USER_ID = "anonymous"


def create_error_response(message: str, details: Optional[str] = None) -> Dict[str, Any]:
    """Error body shared by every endpoint."""
    response: Dict[str, Any] = {"error": message}
    if details is not None:
        response["details"] = details
    return response


def serialize_test_case(case: SavedTestCase) -> Dict[str, Any]:
    """Transport form of a stored case; the owner id stays server side."""
    data = case.to_dict()
    data.pop("userId", None)
    return data


def serialize_test_cases(cases: List[SavedTestCase]) -> List[Dict[str, Any]]:
    return [serialize_test_case(case) for case in cases]


def serialize_generated_file(generated: GeneratedFile) -> Dict[str, str]:
    return {"filename": generated.filename, "content": generated.content}


def create_files_response(files: List[GeneratedFile]) -> Dict[str, Any]:
    return {"success": True, "files": [serialize_generated_file(item) for item in files]}
