"""Execution record routes."""
from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from testcase_store.store import RecordStoreError

from ..services.case_files import get_store
from ..utils.serializers import create_error_response

LOGGER = logging.getLogger("web_mvp.executions")

executions_bp = Blueprint("executions", __name__)


@executions_bp.route("/test-executions", methods=["POST"])
def save_execution():
    """Store the record posted by a finished live run."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data.get("testCaseId"):
        return jsonify(create_error_response("testCaseId is required")), 400
    try:
        stored = get_store().append_execution(data)
    except RecordStoreError as exc:
        LOGGER.error("Error saving test execution: %s", exc)
        return jsonify(create_error_response("Failed to save test execution", str(exc))), 500
    return jsonify(stored), 201


@executions_bp.route("/test-executions", methods=["GET"])
def list_executions():
    test_case_id = request.args.get("testCaseId") or None
    try:
        executions = get_store().list_executions(test_case_id)
    except RecordStoreError as exc:
        LOGGER.error("Error fetching test executions: %s", exc)
        return jsonify(create_error_response("Failed to fetch test executions", str(exc))), 500
    return jsonify(executions)
