"""Tests for LLM-backed test case generation and its fallbacks."""
from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest

from generator_mvp.generator import (MISSING_KEY_WARNING, UNEXPECTED_SHAPE_WARNING, TestCaseGenerator, build_prompt,
                                     fallback_test_cases, parse_completion)
from generator_mvp.llm_client import DEFAULT_MODEL, LLMClient, LLMClientError, LLMSettings
from generator_mvp.models import GenerationRequest

CASES = [{"name": "Valid login", "description": "d", "steps": ["await page.goto('/login')"], "expectedResult": "ok"}]


# ─── Generation ──────────────────────────────────────────────


def client_returning(content: str) -> MagicMock:
    client = MagicMock()
    client.chat_completion.return_value = content
    return client


@pytest.fixture
def request_() -> GenerationRequest:
    return GenerationRequest(statement="Users can reset their password", framework="playwright")


def test_object_response(request_):
    client = client_returning(json.dumps({"testCases": CASES}))

    response = TestCaseGenerator(client).generate(request_)

    assert [case.name for case in response.test_cases] == ["Valid login"]
    assert response.warning is None and response.error is None
    messages = client.chat_completion.call_args.args[0]
    assert messages[0]["role"] == "system"
    assert "Users can reset their password" in messages[1]["content"]
    assert client.chat_completion.call_args.kwargs["json_mode"] is True


def test_fenced_response(request_):
    client = client_returning("Here you go:\n```json\n" + json.dumps({"testCases": CASES}) + "\n```")
    response = TestCaseGenerator(client).generate(request_)
    assert response.test_cases[0].steps == ["await page.goto('/login')"]


def test_bare_array_response(request_):
    response = TestCaseGenerator(client_returning(json.dumps(CASES))).generate(request_)
    assert response.to_dict() == {"testCases": CASES}


def test_unexpected_shape_falls_back(request_):
    response = TestCaseGenerator(client_returning('{"cases": []}')).generate(request_)
    assert response.warning == UNEXPECTED_SHAPE_WARNING
    assert [case.name for case in response.test_cases] == ["Positive Case", "Negative Case", "Edge Case"]


def test_invalid_case_items_fall_back(request_):
    response = TestCaseGenerator(client_returning('{"testCases": [{"name": "x", "steps": "not a list"}]}')).generate(
        request_)
    assert response.warning == UNEXPECTED_SHAPE_WARNING


def test_llm_error_falls_back_with_error(request_):
    client = MagicMock()
    client.chat_completion.side_effect = LLMClientError("rate limited")

    response = TestCaseGenerator(client).generate(request_)

    assert response.error == "rate limited"
    assert len(response.test_cases) == 3


def test_unparseable_output_falls_back(request_):
    response = TestCaseGenerator(client_returning("no json here")).generate(request_)
    assert response.error == "Failed to parse AI response"


def test_missing_configuration_falls_back_with_warning(request_):
    def unconfigured():
        raise ValueError("OPENAI_API_KEY (or API_KEY) is not configured")

    response = TestCaseGenerator(client_factory=unconfigured).generate(request_)

    assert response.warning == MISSING_KEY_WARNING
    assert response.used_fallback


def test_statement_is_required():
    with pytest.raises(ValueError):
        TestCaseGenerator(MagicMock()).generate(GenerationRequest(statement=""))


def test_auth_fallback_cases():
    request = GenerationRequest(statement="Dashboard is protected", requires_login=True,
                                target_page_url="/dashboard", redirect_page_url="/signin")

    cases = fallback_test_cases(request)

    assert len(cases) == 4
    assert cases[0].steps[0] == "await page.goto('/dashboard')"
    assert cases[0].expected_result == "User should be redirected to /signin"


def test_login_without_target_uses_generic_fallback():
    cases = fallback_test_cases(GenerationRequest(statement="Search Works", requires_login=True))
    assert cases[0].description == "Test that search works"


def test_prompt_includes_auth_context():
    prompt = build_prompt(GenerationRequest(statement="s", framework="cypress", requires_login=True,
                                            target_page_url="/admin"))
    assert "Redirect page URL (if not authenticated): /login" in prompt
    assert 'navigate to "/admin"' in prompt
    assert "cypress-style navigation steps" in prompt


def test_request_from_dict_defaults():
    request = GenerationRequest.from_dict({"statement": "  x  "})
    assert (request.statement, request.framework, request.language, request.redirect_page_url) == (
        "x", "jest", "typescript", "/login")


def test_parse_completion_prefers_plain_json():
    assert parse_completion('{"testCases": []}') == {"testCases": []}


# ─── LLM client ──────────────────────────────────────────────


def test_llm_client_requires_api_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
    with pytest.raises(ValueError):
        LLMClient()


def test_llm_client_json_mode(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    client = LLMClient(default_model="test-model")
    client.client = MagicMock()
    message = MagicMock(content='{"testCases": []}')
    client.client.chat.completions.create.return_value = MagicMock(choices=[MagicMock(message=message)])

    assert client.chat_completion([{"role": "user", "content": "hi"}], json_mode=True) == '{"testCases": []}'
    kwargs = client.client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["response_format"] == {"type": "json_object"}


def test_llm_client_empty_content(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    client = LLMClient()
    client.client = MagicMock()
    client.client.chat.completions.create.return_value = MagicMock(choices=[MagicMock(message=MagicMock(content=""))])

    with pytest.raises(LLMClientError):
        client.chat_completion([])


def test_llm_settings_from_env(monkeypatch):
    monkeypatch.setenv("API_KEY", "sk-fallback")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_MODEL", raising=False)
    monkeypatch.delenv("MODEL_STD", raising=False)
    monkeypatch.setenv("LLM_TIMEOUT", "12.5")

    settings = LLMSettings.from_env()

    assert (settings.api_key, settings.model, settings.timeout) == ("sk-fallback", DEFAULT_MODEL, 12.5)
