"""
Shared fixtures for the pipeline test suite.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from insight_pipeline.domain.batch import BatchItemFailure, BatchItemSuccess, ItemStage
from insight_pipeline.scraping.identifiers import build_product_url
from insight_pipeline.scraping.types import ScrapeResult
from llm_analysis.adapter import _MOCK_RESPONSE
from llm_analysis.extractor import extract_fields
from llm_analysis.schema import AnalysisResult


@pytest.fixture()
def mock_analysis_text() -> str:
    return _MOCK_RESPONSE


@pytest.fixture()
def make_success() -> Callable[..., BatchItemSuccess]:
    """Factory for successful batch items built from a fixed analysis."""

    def _make(index: int, identifier: str, analysis_text: str = _MOCK_RESPONSE) -> BatchItemSuccess:
        return BatchItemSuccess(
            index=index,
            input=identifier,
            identifier=identifier,
            scrape=ScrapeResult(
                identifier=identifier,
                url=build_product_url(identifier),
                success=True,
                content=f"Product page for {identifier}",
                api_version="v1",
                attempts=1,
            ),
            analysis=AnalysisResult(success=True, content=analysis_text, model="mock"),
            extracted=extract_fields(analysis_text, identifier),
        )

    return _make


@pytest.fixture()
def make_failure() -> Callable[..., BatchItemFailure]:
    """Factory for failed batch items."""

    def _make(
        index: int,
        raw_input: object,
        error: str = "Invalid ASIN or URL format",
        stage: ItemStage = ItemStage.NORMALIZING,
        identifier: str | None = None,
    ) -> BatchItemFailure:
        return BatchItemFailure(
            index=index,
            input=raw_input,
            error=error,
            stage=stage,
            identifier=identifier,
        )

    return _make
