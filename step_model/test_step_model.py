"""Tests for the step vocabulary, payload validation and sequence transport."""
from __future__ import annotations

import json

import pytest

from step_model.models import STEP_TEMPLATES, Step, StepConfigurationError, StepType
from step_model.sequence import Opaque, Structured, dump_sequence, load_sequence, parse_steps
from step_model.validation import validate_sequence, validate_step


def make(step_type: str, **payload) -> Step:
    return Step.from_dict({"id": payload.pop("id", "s1"), "type": step_type, **payload})


# ─── Step model ──────────────────────────────────────────────


def test_from_dict_reads_wire_keys_and_blanks():
    step = make("api_call", method="post", url="/api", expectedStatus="201", body="", headers={"X-A": "1"})

    assert step.type == StepType.API_CALL
    assert step.expected_status == "201"
    assert step.body is None
    assert json.loads(step.headers) == {"X-A": "1"}
    assert step.http_method == "POST"


def test_to_dict_omits_unset_fields():
    step = make("click", selector="#go", description="Go")
    assert step.to_dict() == {"id": "s1", "type": "click", "description": "Go", "selector": "#go"}


def test_unknown_type_is_configuration_error():
    with pytest.raises(StepConfigurationError):
        Step.from_dict({"id": "x", "type": "hover"})


def test_defaults_for_optional_values():
    assert make("waitForPageLoad").load_state == "networkidle"
    assert make("waitForPageLoad", action="load").load_state == "load"
    assert make("api_call", url="/x").status_code == "200"
    assert make("api_call", url="/x").http_method == "GET"
    assert make("navigate", url="/").label == "navigate"


def test_every_type_has_an_editor_template():
    assert set(STEP_TEMPLATES) == set(StepType)


# ─── Validation ──────────────────────────────────────────────


@pytest.mark.parametrize("step_type, payload", [
    ("navigate", {}),
    ("click", {}),
    ("fill", {"selector": "#email"}),
    ("wait", {}),
    ("verifyElement", {}),
    ("api_call", {"url": "/api"}),
])
def test_missing_required_field(step_type, payload):
    with pytest.raises(StepConfigurationError, match="missing"):
        validate_step(make(step_type, **payload))


def test_foreign_field_is_rejected():
    with pytest.raises(StepConfigurationError, match="'selector' is not valid on a navigate step"):
        validate_step(make("navigate", url="/", selector="#x"), position=2)


def test_error_message_names_position():
    with pytest.raises(StepConfigurationError, match="^Step 3:"):
        validate_step(make("click"), position=2)


def test_assert_requires_statement():
    with pytest.raises(StepConfigurationError):
        validate_step(make("assert"))
    validate_step(make("assert", action="page.url().includes('/home')"))


def test_unknown_load_state():
    with pytest.raises(StepConfigurationError, match="unsupported load state"):
        validate_step(make("waitForPageLoad", action="idle"))


def test_api_call_payload_must_be_json():
    with pytest.raises(StepConfigurationError, match="headers"):
        validate_step(make("api_call", method="GET", url="/a", headers="[1]"))
    with pytest.raises(StepConfigurationError, match="body"):
        validate_step(make("api_call", method="POST", url="/a", body="{oops"))
    with pytest.raises(StepConfigurationError, match="expectedStatus"):
        validate_step(make("api_call", method="GET", url="/a", expectedStatus="ok"))


def test_duplicate_ids_in_sequence():
    steps = [make("navigate", url="/"), make("click", selector="#a")]
    with pytest.raises(StepConfigurationError, match="duplicate id 's1'"):
        validate_sequence(steps)


def test_valid_sequence_is_returned_in_order():
    steps = [make("navigate", id="a", url="/"), make("fill", id="b", selector="#q", value="x")]
    assert validate_sequence(steps) == tuple(steps)


# ─── Sequence transport ──────────────────────────────────────


def test_structured_sequence_keeps_code_lines():
    steps = parse_steps([{"id": "1", "type": "navigate", "url": "/login"}])
    lines = dump_sequence(steps, ["await page.goto('/login')"])

    loaded = load_sequence(lines)

    assert isinstance(loaded, Structured)
    assert loaded.steps == steps
    assert loaded.code_lines == ("await page.goto('/login')",)


def test_plain_lines_are_opaque():
    loaded = load_sequence(["Open the home page", "Click login"])
    assert loaded == Opaque(lines=("Open the home page", "Click login"))


def test_unparseable_bracket_line_is_kept():
    loaded = load_sequence(["[not json", "second"])
    assert loaded == Opaque(lines=("[not json", "second"))


def test_empty_array_drops_the_json_line():
    assert load_sequence(["[]", "step one"]) == Opaque(lines=("step one",))


def test_non_step_entry_in_array_is_configuration_error():
    with pytest.raises(StepConfigurationError):
        load_sequence([json.dumps([{"id": "1", "type": "teleport"}])])


def test_empty_list_is_opaque():
    assert load_sequence([]) == Opaque(lines=())
