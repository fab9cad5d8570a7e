"""Generation and download routes."""
from __future__ import annotations

import logging

from flask import Blueprint, Response, jsonify, request

from generator_mvp.models import GenerationRequest

from ..services.case_files import get_generator, render_case_file
from ..utils.serializers import create_error_response, create_files_response

LOGGER = logging.getLogger("web_mvp.tooling")

tooling_bp = Blueprint("tooling", __name__)


@tooling_bp.route("/generate-tests", methods=["POST"])
def generate_tests():
    data = request.get_json(silent=True) or {}
    generation_request = GenerationRequest.from_dict(data)
    if not generation_request.statement:
        return jsonify(create_error_response("Statement is required")), 400

    response = get_generator().generate(generation_request)
    if response.used_fallback:
        LOGGER.info("Returned fallback test cases: %s", response.warning or response.error)
    return jsonify(response.to_dict())


@tooling_bp.route("/download-test-file", methods=["POST"])
def download_test_file():
    """Render test files; a single file is sent as an attachment."""
    data = request.get_json(silent=True) or {}
    test_cases = data.get("testCases")
    if not isinstance(test_cases, list) or not test_cases:
        return jsonify(create_error_response("Test cases are required")), 400

    framework = data.get("framework")
    language = data.get("language")
    try:
        files = [render_case_file(case, framework, language) for case in test_cases if isinstance(case, dict)]
    except ValueError as exc:
        LOGGER.error("Error generating test file: %s", exc)
        return jsonify(create_error_response("Failed to generate test file", str(exc))), 400
    if not files:
        return jsonify(create_error_response("Test cases are required")), 400

    if len(files) == 1:
        generated = files[0]
        return Response(
            generated.content,
            mimetype="text/plain",
            headers={"Content-Disposition": f'attachment; filename="{generated.filename}"'},
        )
    return jsonify(create_files_response(files))
