"""LLM adapters for product analysis generation.

Provides a base interface, a Gemini ``generateContent`` adapter and a
deterministic mock for testing.
"""

import os
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from insight_pipeline.config import DEFAULT_GEMINI_BASE_URL, DEFAULT_GEMINI_MODEL, ConfigurationError


class LLMRequestError(RuntimeError):
    """Raised when the generation endpoint answers with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class LLMResponseError(ValueError):
    """Raised when the generation endpoint returns a malformed payload."""


def extract_candidate_text(payload: Any) -> str:
    """Return ``candidates[0].content.parts[0].text`` or an empty string.

    Args:
        payload: Decoded JSON response body.

    Returns:
        The generated text, or ``""`` when any node along the path is absent.
    """
    node: Any = payload
    for key in ("candidates", 0, "content", "parts", 0, "text"):
        if isinstance(key, int):
            if not isinstance(node, list) or len(node) <= key:
                return ""
        elif not isinstance(node, dict) or key not in node:
            return ""
        node = node[key]
    return node if isinstance(node, str) else ""


class BaseLLMAdapter(ABC):
    """Abstract base for all LLM adapters."""

    model: str = "unknown"

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Send a prompt to the LLM and return the raw response text.

        Args:
            prompt: The fully formatted prompt string.

        Returns:
            Raw text response from the model.
        """


class GeminiLLMAdapter(BaseLLMAdapter):
    """Adapter for the Gemini ``generateContent`` REST endpoint.

    Makes exactly one request per ``generate`` call; retrying is left
    to the caller.
    """

    def __init__(
        self,
        model: str = DEFAULT_GEMINI_MODEL,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_GEMINI_BASE_URL,
        timeout_seconds: float = 120.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialise the Gemini adapter.

        Args:
            model: Model identifier used in the endpoint path.
            api_key: Gemini API key. Falls back to GEMINI_API_KEY env var.
            base_url: Base URL of the models collection.
            timeout_seconds: Per-request timeout.
            http_client: Optional shared ``httpx.AsyncClient``.
        """
        resolved_key = api_key or os.environ.get("GEMINI_API_KEY", "")
        if not resolved_key:
            raise ConfigurationError("GEMINI_API_KEY is required for analysis.")

        self.model = model
        self._api_key = resolved_key
        self._endpoint = f"{base_url.rstrip('/')}/{model}:generateContent"
        self._timeout_seconds = timeout_seconds
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def generate(self, prompt: str) -> str:
        """Call the Gemini generateContent API.

        Args:
            prompt: The fully formatted prompt string.

        Returns:
            Generated text, ``""`` when the response carries no text node.

        Raises:
            LLMRequestError: If the endpoint answers with a non-2xx status.
            LLMResponseError: If the body is not a JSON object.
            httpx.HTTPError: On transport failures and timeouts.
        """
        response = await self._client.post(
            self._endpoint,
            json={"contents": [{"parts": [{"text": prompt}]}]},
            headers={
                "Content-Type": "application/json",
                "x-goog-api-key": self._api_key,
            },
            timeout=self._timeout_seconds,
        )
        if not response.is_success:
            raise LLMRequestError(
                f"Gemini API error: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise LLMResponseError("Gemini API response was not valid JSON.") from exc
        if not isinstance(payload, dict):
            raise LLMResponseError("Gemini API response was not a JSON object.")
        return extract_candidate_text(payload)


# ---------------------------------------------------------------------------
# Fixed mock response used for local testing.
# ---------------------------------------------------------------------------
_MOCK_RESPONSE = """\
## 基本信息 / Basic Information
产品标题: Mock Wireless Earbuds with Charging Case
价格: $29.99
评分: 4.4

第一部分: 文案构建 (Copywriting)
The listing leads with battery life and fit; bullet points are benefit-led.

第二部分: 视觉资产 (Visual Assets)
Seven images, one lifestyle video, consistent white-background hero shot.

第三部分: 评论分析 (Reviews)
Buyers praise comfort; complaints cluster around case hinge durability.

第四部分: 市场分析 (Market)
Priced below the category median with strong review velocity.
"""


class MockLLMAdapter(BaseLLMAdapter):
    """Deterministic adapter that returns a fixed bilingual analysis.

    Used for local testing and CI pipelines where no LLM API
    is available. Prompts are recorded for inspection.
    """

    model = "mock"

    def __init__(self, response: str = _MOCK_RESPONSE) -> None:
        self._response = response
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        """Return the fixed response regardless of input.

        Args:
            prompt: Recorded, otherwise ignored.

        Returns:
            The configured analysis text.
        """
        self.prompts.append(prompt)
        return self._response
