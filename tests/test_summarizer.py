"""
tests/test_summarizer.py

Gemini adapter, prompt builder and AISummarizer behaviour.
"""

from __future__ import annotations

import json

import httpx
import pytest

from insight_pipeline.config import ConfigurationError
from llm_analysis.adapter import (
    GeminiLLMAdapter,
    LLMRequestError,
    LLMResponseError,
    MockLLMAdapter,
    extract_candidate_text,
)
from llm_analysis.prompt_builder import (
    PRODUCT_CONTENT_PLACEHOLDER,
    AnalysisPromptBuilder,
    truncate_content,
)
from llm_analysis.summarizer import AISummarizer

BASE_URL = "https://gemini.test/v1beta/models"


def gemini_payload(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def build_adapter(handler) -> GeminiLLMAdapter:
    return GeminiLLMAdapter(
        model="gemini-test",
        api_key="gem-key",
        base_url=BASE_URL,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


# ---------------------------------------------------------------------------
# Gemini adapter
# ---------------------------------------------------------------------------


class TestGeminiAdapter:
    @pytest.mark.asyncio
    async def test_request_shape_and_text(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=gemini_payload("analysis text"))

        adapter = build_adapter(handler)
        text = await adapter.generate("hello prompt")

        assert text == "analysis text"
        request = seen[0]
        assert str(request.url) == f"{BASE_URL}/gemini-test:generateContent"
        assert request.headers["x-goog-api-key"] == "gem-key"
        assert json.loads(request.content) == {"contents": [{"parts": [{"text": "hello prompt"}]}]}

    @pytest.mark.asyncio
    async def test_non_2xx_raises_request_error(self) -> None:
        adapter = build_adapter(lambda request: httpx.Response(429, text="quota"))

        with pytest.raises(LLMRequestError) as exc_info:
            await adapter.generate("prompt")

        assert exc_info.value.status_code == 429
        assert "429" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_non_json_raises_response_error(self) -> None:
        adapter = build_adapter(lambda request: httpx.Response(200, text="not json"))

        with pytest.raises(LLMResponseError):
            await adapter.generate("prompt")

    @pytest.mark.asyncio
    async def test_missing_nodes_yield_empty_text(self) -> None:
        adapter = build_adapter(lambda request: httpx.Response(200, json={"candidates": []}))

        assert await adapter.generate("prompt") == ""

    def test_missing_api_key_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with pytest.raises(ConfigurationError):
            GeminiLLMAdapter(api_key=None)

    def test_api_key_falls_back_to_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GEMINI_API_KEY", "env-key")
        adapter = GeminiLLMAdapter(model="m", http_client=httpx.AsyncClient())
        assert adapter.model == "m"


class TestExtractCandidateText:
    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"candidates": []},
            {"candidates": [{}]},
            {"candidates": [{"content": {"parts": []}}]},
            {"candidates": [{"content": {"parts": [{"text": None}]}}]},
            {"candidates": "oops"},
        ],
    )
    def test_returns_empty_string(self, payload: dict) -> None:
        assert extract_candidate_text(payload) == ""

    def test_returns_first_part(self) -> None:
        payload = {"candidates": [{"content": {"parts": [{"text": "a"}, {"text": "b"}]}}]}
        assert extract_candidate_text(payload) == "a"


# ---------------------------------------------------------------------------
# Prompt builder
# ---------------------------------------------------------------------------


class TestPromptBuilder:
    def test_default_template_has_placeholder(self) -> None:
        builder = AnalysisPromptBuilder()
        assert PRODUCT_CONTENT_PLACEHOLDER in builder.template

    def test_content_is_substituted(self) -> None:
        builder = AnalysisPromptBuilder(template="Analyse:\n{{ PRODUCT_CONTENT }}\nEnd")
        assert builder.build_prompt("PAGE") == "Analyse:\nPAGE\nEnd"

    def test_content_is_truncated(self) -> None:
        builder = AnalysisPromptBuilder(template="[{{ PRODUCT_CONTENT }}]", max_content_chars=5)
        assert builder.build_prompt("abcdefghij") == "[abcde]"

    def test_only_first_placeholder_replaced(self) -> None:
        builder = AnalysisPromptBuilder(template="{{ PRODUCT_CONTENT }} / {{ PRODUCT_CONTENT }}")
        assert builder.build_prompt("x") == "x / {{ PRODUCT_CONTENT }}"

    def test_template_without_placeholder_rejected(self) -> None:
        with pytest.raises(ValueError):
            AnalysisPromptBuilder(template="no slot here")

    def test_template_loaded_from_path(self, tmp_path) -> None:
        path = tmp_path / "prompt.md"
        path.write_text("Custom {{ PRODUCT_CONTENT }}", encoding="utf-8")
        builder = AnalysisPromptBuilder(template_path=str(path))
        assert builder.build_prompt("body") == "Custom body"

    def test_truncate_content(self) -> None:
        assert truncate_content("short", 10) == "short"
        assert truncate_content("x" * 20, 10) == "x" * 10


# ---------------------------------------------------------------------------
# Summarizer
# ---------------------------------------------------------------------------


class FailingAdapter(MockLLMAdapter):
    model = "failing"

    def __init__(self, exc: Exception) -> None:
        super().__init__()
        self._exc = exc

    async def generate(self, prompt: str) -> str:
        raise self._exc


class TestAISummarizer:
    @pytest.mark.asyncio
    async def test_success_wraps_text(self) -> None:
        adapter = MockLLMAdapter(response="fine analysis")
        summarizer = AISummarizer(adapter, AnalysisPromptBuilder(template="P: {{ PRODUCT_CONTENT }}"))

        result = await summarizer.analyze("page content")

        assert result.success is True
        assert result.content == "fine analysis"
        assert result.error is None
        assert result.model == "mock"
        assert adapter.prompts == ["P: page content"]

    @pytest.mark.asyncio
    async def test_prompt_receives_truncated_content(self) -> None:
        adapter = MockLLMAdapter()
        builder = AnalysisPromptBuilder(template="{{ PRODUCT_CONTENT }}", max_content_chars=100_000)

        await AISummarizer(adapter, builder).analyze("y" * 150_000)

        assert len(adapter.prompts[0]) == 100_000

    @pytest.mark.asyncio
    async def test_request_error_becomes_failed_result(self) -> None:
        summarizer = AISummarizer(FailingAdapter(LLMRequestError("Gemini API error: 500", status_code=500)))

        result = await summarizer.analyze("content")

        assert result.success is False
        assert result.content is None
        assert result.error == "Gemini API error: 500"
        assert result.model == "failing"

    @pytest.mark.asyncio
    async def test_transport_error_becomes_failed_result(self) -> None:
        summarizer = AISummarizer(FailingAdapter(httpx.ReadTimeout("timed out")))

        result = await summarizer.analyze("content")

        assert result.success is False
        assert result.error == "timed out"

    @pytest.mark.asyncio
    async def test_gemini_end_to_end(self) -> None:
        adapter = build_adapter(lambda request: httpx.Response(200, json=gemini_payload("产品标题: X")))

        result = await AISummarizer(adapter).analyze("page")

        assert result.success is True
        assert result.content == "产品标题: X"
        assert result.model == "gemini-test"
