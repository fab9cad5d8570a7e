"""Natural-language statement to test case generation."""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional

from jsonschema import Draft7Validator

from .llm_client import LLMClient, LLMClientError
from .models import GeneratedCase, GenerationRequest, GenerationResponse

LOGGER = logging.getLogger("generator_mvp")

JSON_BLOCK_RE = re.compile(r"```(?:json)?\s*(\{.*\}|\[.*\])\s*```", re.DOTALL)

MISSING_KEY_WARNING = "OpenAI API key not configured. Using fallback test case generation."
UNEXPECTED_SHAPE_WARNING = "Unexpected AI response structure. Using fallback test case generation."

SYSTEM_PROMPT = "You are a test case generation expert. Generate comprehensive test cases in JSON format."

TEST_CASES_SCHEMA: Dict[str, Any] = {
    "type": "array",
    "minItems": 1,
    "items": {
        "type": "object",
        "required": ["name", "steps"],
        "properties": {
            "name": {"type": "string", "minLength": 1},
            "description": {"type": "string"},
            "steps": {"type": "array", "items": {"type": "string"}},
            "expectedResult": {"type": "string"},
        },
    },
}


def extract_json_block(text: str) -> str:
    match = JSON_BLOCK_RE.search(text)
    if match:
        return match.group(1)
    first_brace = text.find("{")
    last_brace = text.rfind("}")
    if first_brace != -1 and last_brace != -1 and last_brace > first_brace:
        return text[first_brace:last_brace + 1]
    raise ValueError("Failed to parse AI response")


def parse_completion(text: str) -> Any:
    """Decode the model output, accepting a bare object or a fenced block."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return json.loads(extract_json_block(text))


def build_prompt(request: GenerationRequest) -> str:
    auth_context = ""
    if request.requires_login:
        auth_context = ("\n\nAuthentication Context:\n"
                        "- The page requires login/authentication\n"
                        f"- Target page URL: {request.target_page_url or 'not specified'}\n"
                        f"- Redirect page URL (if not authenticated): {request.redirect_page_url}\n"
                        "- Generate test cases that include:\n"
                        "  1. Testing redirect to login page when not authenticated\n"
                        "  2. Testing successful access after login\n"
                        "  3. Testing authentication flow and session management\n"
                        "  4. Use Playwright or similar E2E testing patterns for navigation and redirects")
        if request.target_page_url:
            auth_context += (f"\n- Include steps to navigate to \"{request.target_page_url}\" "
                             "and verify redirect behavior")

    auth_hint = ""
    if request.requires_login:
        auth_hint = (f"For authentication tests, include {request.framework}-style navigation steps "
                     "for redirects and login flows.\n")

    return ("Generate comprehensive test cases based on the following statement.\n"
            "Return the response as a JSON object with a \"testCases\" property containing an array of "
            "test case objects. Each test case should have:\n"
            "- name: A concise test case name\n"
            "- description: A detailed description of what is being tested\n"
            "- steps: An array of test steps as strings (each step should be actual code statements, "
            "not just comments)\n"
            "- expectedResult: The expected outcome as a string\n\n"
            f"Statement: \"{request.statement}\"\n"
            f"Test Framework: {request.framework}\n"
            f"Programming Language: {request.language}{auth_context}\n\n"
            "Generate 3-5 test cases covering positive, negative, and edge cases.\n"
            f"{auth_hint}"
            "Return ONLY valid JSON object with this structure: {\"testCases\": [...]}")


def fallback_test_cases(request: GenerationRequest) -> List[GeneratedCase]:
    """Deterministic cases used whenever the model cannot be consulted."""
    if request.requires_login and request.target_page_url:
        return _auth_fallback_cases(request.target_page_url, request.redirect_page_url)

    subject = request.statement.lower()
    return [
        GeneratedCase(
            name="Positive Case",
            description=f"Test that {subject}",
            steps=["// Setup: Prepare test data",
                   "// Action: Execute the functionality",
                   "// Assert: Verify the result"],
            expected_result="The functionality should work as expected",
        ),
        GeneratedCase(
            name="Negative Case",
            description=f"Test error handling for {subject}",
            steps=["// Setup: Prepare invalid test data",
                   "// Action: Execute with invalid input",
                   "// Assert: Verify error is handled properly"],
            expected_result="Appropriate error should be thrown or handled",
        ),
        GeneratedCase(
            name="Edge Case",
            description=f"Test edge cases for {subject}",
            steps=["// Setup: Prepare edge case data",
                   "// Action: Execute with edge case input",
                   "// Assert: Verify edge case is handled"],
            expected_result="Edge case should be handled correctly",
        ),
    ]


def _auth_fallback_cases(target: str, redirect: str) -> List[GeneratedCase]:
    return [
        GeneratedCase(
            name="Redirect to Login When Not Authenticated",
            description=f"Test that unauthenticated users are redirected to {redirect} when accessing {target}",
            steps=[f"await page.goto('{target}')",
                   f"await page.waitForURL('**{redirect}**')",
                   f"expect(page.url()).toContain('{redirect}')"],
            expected_result=f"User should be redirected to {redirect}",
        ),
        GeneratedCase(
            name="Access Page After Login",
            description=f"Test that authenticated users can access {target} after login",
            steps=[f"await page.goto('{redirect}')",
                   "await page.fill('input[name=\"email\"]', 'test@example.com')",
                   "await page.fill('input[name=\"password\"]', 'password123')",
                   "await page.click('button[type=\"submit\"]')",
                   f"await page.waitForURL('**{target}**')",
                   f"expect(page.url()).toContain('{target}')"],
            expected_result=f"User should be able to access {target} after successful login",
        ),
        GeneratedCase(
            name="Maintain Session After Login",
            description=f"Test that user session is maintained when navigating to {target}",
            steps=["// Assume user is already logged in",
                   f"await page.goto('{target}')",
                   "await page.waitForLoadState('networkidle')",
                   f"expect(page.url()).toContain('{target}')",
                   "// Verify user is still authenticated"],
            expected_result="User session should be maintained and page should be accessible",
        ),
        GeneratedCase(
            name="Handle Invalid Credentials",
            description=f"Test that invalid login credentials prevent access to {target}",
            steps=[f"await page.goto('{redirect}')",
                   "await page.fill('input[name=\"email\"]', 'invalid@example.com')",
                   "await page.fill('input[name=\"password\"]', 'wrongpassword')",
                   "await page.click('button[type=\"submit\"]')",
                   "await page.waitForSelector('.error-message')",
                   f"expect(page.url()).toContain('{redirect}')"],
            expected_result="User should not be able to access protected page with invalid credentials",
        ),
    ]


class TestCaseGenerator:
    """Asks the LLM for test cases and degrades to deterministic ones."""

    __test__ = False

    def __init__(
        self,
        llm_client: Optional[LLMClient] = None,
        *,
        client_factory: Callable[[], LLMClient] = LLMClient,
        temperature: float = 0.7,
    ) -> None:
        self._client = llm_client
        self._client_factory = client_factory
        self.temperature = temperature
        self.validator = Draft7Validator(TEST_CASES_SCHEMA)

    def generate(self, request: GenerationRequest) -> GenerationResponse:
        """Generate cases for ``request``.

        Raises:
            ValueError: When the request carries no statement.
        """
        if not request.statement:
            raise ValueError("Statement is required")

        try:
            client = self._get_client()
        except ValueError as exc:
            LOGGER.warning("LLM not configured, using fallback cases: %s", exc)
            return GenerationResponse(test_cases=fallback_test_cases(request), warning=MISSING_KEY_WARNING)

        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_prompt(request)},
        ]
        try:
            completion = client.chat_completion(messages, temperature=self.temperature, json_mode=True)
            payload = parse_completion(completion)
        except (LLMClientError, ValueError) as exc:
            LOGGER.error("Error generating test cases: %s", exc)
            return GenerationResponse(test_cases=fallback_test_cases(request), error=str(exc))

        raw_cases = self._extract_cases(payload)
        if raw_cases is None:
            LOGGER.warning("LLM response had no testCases array, using fallback cases")
            return GenerationResponse(test_cases=fallback_test_cases(request), warning=UNEXPECTED_SHAPE_WARNING)

        errors = sorted(self.validator.iter_errors(raw_cases), key=lambda e: list(e.path))
        if errors:
            first = errors[0]
            location = "/".join(str(part) for part in first.path) or "<root>"
            LOGGER.warning("LLM test cases failed validation at %s: %s", location, first.message)
            return GenerationResponse(test_cases=fallback_test_cases(request), warning=UNEXPECTED_SHAPE_WARNING)

        cases = [GeneratedCase.from_dict(item) for item in raw_cases]
        LOGGER.info("Generated %d test cases for %s/%s", len(cases), request.framework, request.language)
        return GenerationResponse(test_cases=cases)

    def _get_client(self) -> LLMClient:
        if self._client is None:
            self._client = self._client_factory()
        return self._client

    @staticmethod
    def _extract_cases(payload: Any) -> Optional[List[Any]]:
        if isinstance(payload, list):
            return payload
        if isinstance(payload, dict) and isinstance(payload.get("testCases"), list):
            return payload["testCases"]
        return None
