"""OpenAI chat client used by the test case generator."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from openai import OpenAI

DEFAULT_TIMEOUT = 60.0
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_BASE_URL = "https://api.openai.com/v1"

LOGGER = logging.getLogger("generator_mvp.llm")


class LLMClientError(RuntimeError):
    """Raised when the LLM API returns an error."""


@dataclass
# pylint: disable=too-few-public-methods
class LLMSettings:
    """Connection settings; ``from_env`` fills the gaps from the environment."""

    api_key: str
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(
        cls,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> "LLMSettings":
        """Raises ``ValueError`` when no API key is available."""
        key = api_key or os.getenv("OPENAI_API_KEY") or os.getenv("API_KEY")
        if not key:
            raise ValueError("OPENAI_API_KEY (or API_KEY) is not configured")
        timeout_env = os.getenv("LLM_TIMEOUT")
        return cls(
            api_key=key,
            base_url=base_url or os.getenv("OPENAI_BASE_URL") or DEFAULT_BASE_URL,
            model=model or os.getenv("OPENAI_MODEL") or os.getenv("MODEL_STD") or DEFAULT_MODEL,
            timeout=timeout or (float(timeout_env) if timeout_env else DEFAULT_TIMEOUT),
        )


class LLMClient:
    """Chat completions for test case generation.

    Construction fails with ``ValueError`` when no API key is configured; the
    generator treats that as "use the fallback cases".
    """

    def __init__(self, settings: Optional[LLMSettings] = None, *, default_model: Optional[str] = None) -> None:
        self.settings = settings or LLMSettings.from_env(model=default_model)
        self.model = self.settings.model
        self.client = OpenAI(api_key=self.settings.api_key, base_url=self.settings.base_url)

    def chat_completion(
        self,
        messages: List[Dict[str, Any]],
        *,
        model: Optional[str] = None,
        temperature: float = 0.2,
        json_mode: bool = False,
    ) -> str:
        """Return the text of the first choice.

        ``json_mode`` asks the model for a JSON object, which is how the
        generator requests its ``{"testCases": [...]}`` payload.
        """
        request: Dict[str, Any] = {
            "model": model or self.model,
            "messages": messages,
            "temperature": temperature,
            "timeout": self.settings.timeout,
        }
        if json_mode:
            request["response_format"] = {"type": "json_object"}
        LOGGER.debug("Requesting completion from %s (%d messages)", request["model"], len(messages))
        try:
            response = self.client.chat.completions.create(**request)
        except Exception as exc:  # pragma: no cover - SDK exception hierarchy
            raise LLMClientError(f"LLM API call failed: {exc}") from exc

        if not response.choices:
            raise LLMClientError("LLM returned no choices")
        return _message_text(response.choices[0].message)


def _message_text(message: Any) -> str:
    content = getattr(message, "content", None)
    if isinstance(content, list):
        content = "".join(item.get("text") or "" for item in content if isinstance(item, dict))
    if not isinstance(content, str) or not content.strip():
        raise LLMClientError("No response from AI")
    return content
