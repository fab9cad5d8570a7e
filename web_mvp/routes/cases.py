"""Test case CRUD routes."""
from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from testcase_store.models import editable_fields
from testcase_store.store import RecordStoreError

from ..services.case_files import (CODE_AFFECTING_KEYS, generated_code_for, get_store, stored_steps,
                                   validate_case_steps)
from ..utils.serializers import DEFAULT_USER_ID, create_error_response, serialize_test_case, serialize_test_cases

LOGGER = logging.getLogger("web_mvp.test_cases")

test_cases_bp = Blueprint("test_cases", __name__)

REQUIRED_KEYS = ("name", "framework", "language")


def current_user_id() -> str:
    return (request.headers.get("X-User-Id") or "").strip() or DEFAULT_USER_ID


def _owned_case(case_id: str):
    case = get_store().get_by_id(case_id)
    if case is None or case.user_id != current_user_id():
        return None
    return case


@test_cases_bp.route("/test-cases", methods=["GET"])
def list_test_cases():
    try:
        cases = get_store().list_for_user(current_user_id())
    except RecordStoreError as exc:
        LOGGER.error("Error fetching test cases: %s", exc)
        return jsonify(create_error_response("Failed to fetch test cases", str(exc))), 500
    return jsonify(serialize_test_cases(cases))


@test_cases_bp.route("/test-cases", methods=["POST"])
def create_test_case():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify(create_error_response("Request body must be a JSON object")), 400

    missing = [key for key in REQUIRED_KEYS if not data.get(key)]
    if missing:
        return jsonify(create_error_response(f"Missing required fields: {', '.join(missing)}")), 400

    draft = editable_fields(data)
    try:
        validate_case_steps(draft)
        if "steps" in draft:
            draft["steps"] = stored_steps(draft)
        draft["generatedCode"] = generated_code_for(draft)
    except ValueError as exc:
        return jsonify(create_error_response("Invalid test case", str(exc))), 400

    try:
        case = get_store().create(draft, user_id=current_user_id())
    except RecordStoreError as exc:
        LOGGER.error("Error creating test case: %s", exc)
        return jsonify(create_error_response("Failed to create test case", str(exc))), 500
    return jsonify(serialize_test_case(case)), 201


@test_cases_bp.route("/test-cases/<case_id>", methods=["GET"])
def get_test_case(case_id: str):
    try:
        case = _owned_case(case_id)
    except RecordStoreError as exc:
        LOGGER.error("Error fetching test case %s: %s", case_id, exc)
        return jsonify(create_error_response("Failed to fetch test case", str(exc))), 500
    if case is None:
        return jsonify(create_error_response("Test case not found")), 404
    return jsonify(serialize_test_case(case))


@test_cases_bp.route("/test-cases/<case_id>", methods=["PUT"])
def update_test_case(case_id: str):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify(create_error_response("Request body must be a JSON object")), 400

    changes = editable_fields(data)
    changes.pop("generatedCode", None)
    if not changes:
        return jsonify(create_error_response("No fields to update")), 400

    try:
        case = _owned_case(case_id)
        if case is None:
            return jsonify(create_error_response("Test case not found")), 404

        if any(key in changes for key in CODE_AFFECTING_KEYS):
            merged = {**case.to_dict(), **changes}
            try:
                validate_case_steps(merged)
                changes["steps"] = stored_steps(merged)
                changes["generatedCode"] = generated_code_for(merged)
            except ValueError as exc:
                return jsonify(create_error_response("Invalid test case", str(exc))), 400

        updated = get_store().update(case_id, changes)
    except RecordStoreError as exc:
        LOGGER.error("Error updating test case %s: %s", case_id, exc)
        return jsonify(create_error_response("Failed to update test case", str(exc))), 500

    if updated is None:
        return jsonify(create_error_response("Test case not found")), 404
    return jsonify(serialize_test_case(updated))


@test_cases_bp.route("/test-cases/<case_id>", methods=["DELETE"])
def delete_test_case(case_id: str):
    try:
        if _owned_case(case_id) is None:
            return jsonify(create_error_response("Test case not found")), 404
        get_store().delete(case_id)
    except RecordStoreError as exc:
        LOGGER.error("Error deleting test case %s: %s", case_id, exc)
        return jsonify(create_error_response("Failed to delete test case", str(exc))), 500
    return jsonify({"success": True})
