"""
insight_pipeline/domain/batch.py

Domain models for batch scrape-and-analyse runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Union

from llm_analysis.schema import AnalysisResult, ExtractedFields

from insight_pipeline.scraping.types import ScrapeResult, utc_now


class ItemStage(str, Enum):
    """
    Lifecycle stage of one batch item.
    """

    PENDING = "pending"
    NORMALIZING = "normalizing"
    SCRAPING = "scraping"
    ANALYZING = "analyzing"
    EXTRACTING = "extracting"
    DONE = "done"


@dataclass(frozen=True)
class BatchProgress:
    """
    Progress event emitted before an item starts processing.
    """

    index: int
    total: int
    item: object

    @property
    def current(self) -> int:
        return self.index + 1


@dataclass(frozen=True)
class BatchItemSuccess:
    """
    Item that passed every stage.
    """

    index: int
    input: object
    identifier: str
    scrape: ScrapeResult
    analysis: AnalysisResult
    extracted: ExtractedFields
    timestamp: datetime = field(default_factory=utc_now)
    success: bool = field(default=True, init=False)


@dataclass(frozen=True)
class BatchItemFailure:
    """
    Item that stopped at ``stage`` with ``error``; ``input`` is the raw entry.
    """

    index: int
    input: object
    error: str
    stage: ItemStage
    identifier: str | None = None
    timestamp: datetime = field(default_factory=utc_now)
    success: bool = field(default=False, init=False)


BatchItemResult = Union[BatchItemSuccess, BatchItemFailure]


@dataclass(frozen=True)
class BatchSummary:
    """
    Aggregate counts for one batch run.
    """

    total: int
    succeeded: int
    failed: int
    timestamp: datetime = field(default_factory=utc_now)

    @classmethod
    def from_results(cls, results: list[BatchItemResult] | tuple[BatchItemResult, ...]) -> "BatchSummary":
        succeeded = sum(1 for result in results if result.success)
        return cls(total=len(results), succeeded=succeeded, failed=len(results) - succeeded)


@dataclass(frozen=True)
class BatchResult:
    """
    Ordered item results, index-aligned with the batch input.
    """

    results: tuple[BatchItemResult, ...]
    summary: BatchSummary

    def __len__(self) -> int:
        return len(self.results)

    def successes(self) -> list[BatchItemSuccess]:
        return [result for result in self.results if isinstance(result, BatchItemSuccess)]

    def failures(self) -> list[BatchItemFailure]:
        return [result for result in self.results if isinstance(result, BatchItemFailure)]
