"""
insight_pipeline/services/batch_orchestrator.py

Batch scrape-analyse-extract orchestration with bounded concurrency.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence

import httpx
from llm_analysis.adapter import GeminiLLMAdapter
from llm_analysis.extractor import extract_fields
from llm_analysis.prompt_builder import AnalysisPromptBuilder
from llm_analysis.schema import ExtractedFields
from llm_analysis.summarizer import AISummarizer

from insight_pipeline.config import BatchSettings, PipelineSettings
from insight_pipeline.domain.batch import (
    BatchItemFailure,
    BatchItemResult,
    BatchItemSuccess,
    BatchProgress,
    BatchResult,
    BatchSummary,
    ItemStage,
)
from insight_pipeline.scraping.client import ScrapeClient
from insight_pipeline.scraping.identifiers import normalize_identifier
from insight_pipeline.logging_utils import elapsed_ms, log_event, monotonic_ms
from insight_pipeline.services.observers import BatchObserver

logger = logging.getLogger(__name__)

Extractor = Callable[[str, str], ExtractedFields]


class BatchItemError(RuntimeError):
    """
    Raised inside an item to stop its remaining stages.
    """


class BatchOrchestrator:
    """
    Drives inputs through normalize, scrape, analyze and extract.

    Inputs are processed in fixed-size chunks: items within a chunk run
    concurrently and the next chunk starts only once every item of the
    current one has settled. One item's failure never aborts the batch.
    """

    def __init__(
        self,
        *,
        scrape_client: ScrapeClient,
        summarizer: AISummarizer,
        extractor: Extractor = extract_fields,
        settings: BatchSettings | None = None,
        observers: Sequence[BatchObserver] = (),
    ) -> None:
        self._scrape_client = scrape_client
        self._summarizer = summarizer
        self._extractor = extractor
        self._settings = settings or BatchSettings()
        self._observers = list(observers)

    def subscribe(self, observer: BatchObserver) -> None:
        self._observers.append(observer)

    async def run(
        self,
        inputs: Sequence[object],
        *,
        chunk_size: int | None = None,
        observers: Sequence[BatchObserver] = (),
    ) -> BatchResult:
        items = list(inputs)
        total = len(items)
        size = max(1, chunk_size or self._settings.chunk_size)
        active = [*self._observers, *observers]

        started_ms = monotonic_ms()
        log_event(logger, logging.INFO, "batch_started", total=total, chunk_size=size)

        results: list[BatchItemResult] = []
        for start in range(0, total, size):
            chunk = items[start : start + size]
            chunk_results = await asyncio.gather(
                *(
                    self._process_item(index=start + offset, item=item, total=total, observers=active)
                    for offset, item in enumerate(chunk)
                )
            )
            results.extend(chunk_results)

        batch = BatchResult(results=tuple(results), summary=BatchSummary.from_results(results))
        log_event(
            logger,
            logging.INFO,
            "batch_completed",
            total=batch.summary.total,
            succeeded=batch.summary.succeeded,
            failed=batch.summary.failed,
            duration_ms=elapsed_ms(started_ms),
        )
        self._notify(active, "on_batch_completed", batch)
        return batch

    async def _process_item(
        self,
        *,
        index: int,
        item: object,
        total: int,
        observers: list[BatchObserver],
    ) -> BatchItemResult:
        stage = ItemStage.PENDING
        identifier: str | None = None
        try:
            self._notify(observers, "on_progress", BatchProgress(index=index, total=total, item=item))

            stage = self._enter(observers, index, ItemStage.NORMALIZING)
            identifier = normalize_identifier(item)
            if identifier is None:
                raise BatchItemError("Invalid ASIN or URL format")

            stage = self._enter(observers, index, ItemStage.SCRAPING)
            scrape = await self._scrape_client.scrape(identifier)
            if not scrape.success:
                raise BatchItemError(scrape.error or "Scraping failed")

            stage = self._enter(observers, index, ItemStage.ANALYZING)
            analysis = await self._summarizer.analyze(scrape.content or "")
            if not analysis.success:
                raise BatchItemError(analysis.error or "AI analysis failed")

            stage = self._enter(observers, index, ItemStage.EXTRACTING)
            extracted = self._extractor(analysis.content or "", identifier)
        except Exception as exc:
            failure = BatchItemFailure(
                index=index,
                input=item,
                identifier=identifier,
                error=str(exc) or exc.__class__.__name__,
                stage=stage,
            )
            log_event(
                logger,
                logging.WARNING,
                "batch_item_failed",
                index=index,
                input=item,
                identifier=identifier,
                stage=stage.value,
                error=failure.error,
            )
            self._enter(observers, index, ItemStage.DONE)
            self._notify(observers, "on_item_failed", failure)
            return failure

        success = BatchItemSuccess(
            index=index,
            input=item,
            identifier=identifier,
            scrape=scrape,
            analysis=analysis,
            extracted=extracted,
        )
        self._enter(observers, index, ItemStage.DONE)
        self._notify(observers, "on_item_completed", success)
        return success

    def _enter(self, observers: list[BatchObserver], index: int, stage: ItemStage) -> ItemStage:
        self._notify(observers, "on_stage", index, stage)
        return stage

    @staticmethod
    def _notify(observers: list[BatchObserver], hook: str, *args: object) -> None:
        for observer in observers:
            try:
                getattr(observer, hook)(*args)
            except Exception:
                logger.exception("Batch observer %s.%s failed", type(observer).__name__, hook)


def build_batch_orchestrator(
    settings: PipelineSettings,
    *,
    http_client: httpx.AsyncClient,
    observers: Sequence[BatchObserver] = (),
) -> BatchOrchestrator:
    """
    Wire the scrape client and summarizer from the settings bundle.
    """

    settings.require_credentials()
    scrape_client = ScrapeClient(settings=settings.scrape, http_client=http_client)
    adapter = GeminiLLMAdapter(
        model=settings.analysis.model,
        api_key=settings.analysis.api_key,
        base_url=settings.analysis.base_url,
        timeout_seconds=settings.analysis.timeout_seconds,
        http_client=http_client,
    )
    prompt_builder = AnalysisPromptBuilder(
        template_path=settings.analysis.prompt_path,
        max_content_chars=settings.analysis.max_content_chars,
    )
    return BatchOrchestrator(
        scrape_client=scrape_client,
        summarizer=AISummarizer(adapter, prompt_builder),
        settings=settings.batch,
        observers=observers,
    )
