"""
tests/test_batch_orchestrator.py

BatchOrchestrator chunking, ordering, failure isolation and observers.

The scrape client is a scripted fake; analysis runs through the real
AISummarizer on top of MockLLMAdapter.
"""

from __future__ import annotations

import asyncio

import pytest

from insight_pipeline.domain.batch import BatchItemFailure, BatchItemSuccess, BatchProgress, ItemStage
from insight_pipeline.scraping.identifiers import build_product_url
from insight_pipeline.scraping.types import ScrapeResult
from insight_pipeline.services import BatchObserver, BatchOrchestrator, CallbackObserver
from llm_analysis.adapter import MockLLMAdapter
from llm_analysis.summarizer import AISummarizer


class FakeScrapeClient:
    def __init__(self, *, failures: set[str] | None = None, delays: dict[str, float] | None = None) -> None:
        self.failures = failures or set()
        self.delays = delays or {}
        self.calls: list[str] = []
        self.active = 0
        self.max_active = 0
        self.events: list[tuple[str, str]] = []

    async def scrape(self, identifier: str, *, api_version: str | None = None) -> ScrapeResult:
        self.calls.append(identifier)
        self.events.append(("start", identifier))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delays.get(identifier, 0.001))
        finally:
            self.active -= 1
            self.events.append(("end", identifier))

        url = build_product_url(identifier)
        if identifier in self.failures:
            return ScrapeResult(
                identifier=identifier,
                url=url,
                success=False,
                error="Olostep v1 error: 500 - boom",
                api_version="v1",
                attempts=3,
            )
        return ScrapeResult(
            identifier=identifier,
            url=url,
            success=True,
            content=f"Product page for {identifier}",
            api_version="v1",
            attempts=1,
        )


class FailingAdapter(MockLLMAdapter):
    async def generate(self, prompt: str) -> str:
        raise RuntimeError("Gemini API error: 503")


class RecordingObserver(BatchObserver):
    def __init__(self) -> None:
        self.progress: list[BatchProgress] = []
        self.stages: list[tuple[int, ItemStage]] = []
        self.failed: list[BatchItemFailure] = []
        self.completed: list[BatchItemSuccess] = []
        self.batches = 0

    def on_progress(self, progress: BatchProgress) -> None:
        self.progress.append(progress)

    def on_stage(self, index: int, stage: ItemStage) -> None:
        self.stages.append((index, stage))

    def on_item_failed(self, failure: BatchItemFailure) -> None:
        self.failed.append(failure)

    def on_item_completed(self, success: BatchItemSuccess) -> None:
        self.completed.append(success)

    def on_batch_completed(self, batch) -> None:
        self.batches += 1


class ExplodingObserver(BatchObserver):
    def on_progress(self, progress: BatchProgress) -> None:
        raise RuntimeError("observer bug")


def ids(count: int) -> list[str]:
    return [f"B00000000{index}" for index in range(count)]


@pytest.fixture()
def scrape_client() -> FakeScrapeClient:
    return FakeScrapeClient()


@pytest.fixture()
def orchestrator(scrape_client: FakeScrapeClient) -> BatchOrchestrator:
    return BatchOrchestrator(scrape_client=scrape_client, summarizer=AISummarizer(MockLLMAdapter()))


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class TestResults:
    @pytest.mark.asyncio
    async def test_empty_input(self, orchestrator: BatchOrchestrator, scrape_client: FakeScrapeClient) -> None:
        batch = await orchestrator.run([])

        assert len(batch) == 0
        assert batch.summary.total == 0
        assert batch.summary.succeeded == 0
        assert batch.summary.failed == 0
        assert scrape_client.calls == []

    @pytest.mark.asyncio
    async def test_one_invalid_item_does_not_abort_batch(
        self, orchestrator: BatchOrchestrator, scrape_client: FakeScrapeClient
    ) -> None:
        batch = await orchestrator.run(["B000000001", "not-an-asin", "B000000003"])

        assert len(batch) == 3
        assert batch.summary.succeeded == 2
        assert batch.summary.failed == 1
        failure = batch.results[1]
        assert isinstance(failure, BatchItemFailure)
        assert failure.input == "not-an-asin"
        assert failure.stage is ItemStage.NORMALIZING
        assert failure.error == "Invalid ASIN or URL format"
        assert scrape_client.calls == ["B000000001", "B000000003"]

    @pytest.mark.asyncio
    async def test_success_carries_extracted_fields(self, orchestrator: BatchOrchestrator) -> None:
        batch = await orchestrator.run(["https://www.amazon.com/dp/b000000001"])

        success = batch.results[0]
        assert isinstance(success, BatchItemSuccess)
        assert success.input == "https://www.amazon.com/dp/b000000001"
        assert success.identifier == "B000000001"
        assert success.scrape.success is True
        assert success.analysis.success is True
        assert success.extracted.identifier == "B000000001"
        assert success.extracted.title == "Mock Wireless Earbuds with Charging Case"

    @pytest.mark.asyncio
    async def test_scrape_failure_recorded_at_scraping_stage(self) -> None:
        client = FakeScrapeClient(failures={"B000000002"})
        orchestrator = BatchOrchestrator(scrape_client=client, summarizer=AISummarizer(MockLLMAdapter()))

        batch = await orchestrator.run(["B000000001", "B000000002"])

        failure = batch.results[1]
        assert isinstance(failure, BatchItemFailure)
        assert failure.stage is ItemStage.SCRAPING
        assert failure.identifier == "B000000002"
        assert failure.error == "Olostep v1 error: 500 - boom"

    @pytest.mark.asyncio
    async def test_raised_network_error_is_isolated(self) -> None:
        class RaisingScrapeClient(FakeScrapeClient):
            async def scrape(self, identifier: str, *, api_version: str | None = None) -> ScrapeResult:
                if identifier == "B000000002":
                    raise ConnectionError("network unreachable")
                return await super().scrape(identifier, api_version=api_version)

        orchestrator = BatchOrchestrator(
            scrape_client=RaisingScrapeClient(),
            summarizer=AISummarizer(MockLLMAdapter()),
        )

        batch = await orchestrator.run(["B000000001", "b000000002", "B000000003"])

        assert batch.summary.succeeded == 2
        assert batch.summary.failed == 1
        failure = batch.failures()[0]
        assert failure.index == 1
        assert failure.input == "b000000002"
        assert failure.stage is ItemStage.SCRAPING
        assert failure.error == "network unreachable"

    @pytest.mark.asyncio
    async def test_analysis_failure_recorded_at_analyzing_stage(self, scrape_client: FakeScrapeClient) -> None:
        orchestrator = BatchOrchestrator(scrape_client=scrape_client, summarizer=AISummarizer(FailingAdapter()))

        batch = await orchestrator.run(["B000000001"])

        failure = batch.results[0]
        assert isinstance(failure, BatchItemFailure)
        assert failure.stage is ItemStage.ANALYZING
        assert failure.error == "Gemini API error: 503"

    @pytest.mark.asyncio
    async def test_extractor_exception_recorded_at_extracting_stage(self, scrape_client: FakeScrapeClient) -> None:
        def broken_extractor(text: str, identifier: str):
            raise KeyError("title")

        orchestrator = BatchOrchestrator(
            scrape_client=scrape_client,
            summarizer=AISummarizer(MockLLMAdapter()),
            extractor=broken_extractor,
        )

        batch = await orchestrator.run(["B000000001"])

        failure = batch.results[0]
        assert isinstance(failure, BatchItemFailure)
        assert failure.stage is ItemStage.EXTRACTING

    @pytest.mark.asyncio
    async def test_non_string_input_fails_normalization(self, orchestrator: BatchOrchestrator) -> None:
        batch = await orchestrator.run([None, 12345])

        assert batch.summary.failed == 2
        assert [result.input for result in batch.results] == [None, 12345]


# ---------------------------------------------------------------------------
# Ordering and concurrency
# ---------------------------------------------------------------------------


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_results_follow_input_order(self) -> None:
        inputs = ids(5)
        delays = {identifier: 0.05 - position * 0.01 for position, identifier in enumerate(inputs)}
        client = FakeScrapeClient(delays=delays)
        orchestrator = BatchOrchestrator(scrape_client=client, summarizer=AISummarizer(MockLLMAdapter()))

        batch = await orchestrator.run(inputs, chunk_size=5)

        assert [result.identifier for result in batch.results] == inputs
        assert [result.index for result in batch.results] == list(range(5))

    @pytest.mark.asyncio
    async def test_chunk_size_bounds_concurrency(
        self, orchestrator: BatchOrchestrator, scrape_client: FakeScrapeClient
    ) -> None:
        await orchestrator.run(ids(7), chunk_size=2)

        assert scrape_client.max_active == 2

    @pytest.mark.asyncio
    async def test_next_chunk_waits_for_previous(
        self, orchestrator: BatchOrchestrator, scrape_client: FakeScrapeClient
    ) -> None:
        inputs = ids(4)
        await orchestrator.run(inputs, chunk_size=2)

        events = scrape_client.events
        last_end_first_chunk = max(events.index(("end", identifier)) for identifier in inputs[:2])
        first_start_second_chunk = min(events.index(("start", identifier)) for identifier in inputs[2:])
        assert last_end_first_chunk < first_start_second_chunk

    @pytest.mark.asyncio
    async def test_items_in_a_chunk_run_concurrently(
        self, orchestrator: BatchOrchestrator, scrape_client: FakeScrapeClient
    ) -> None:
        await orchestrator.run(ids(3), chunk_size=5)

        assert scrape_client.max_active == 3


# ---------------------------------------------------------------------------
# Observers
# ---------------------------------------------------------------------------


class TestObservers:
    @pytest.mark.asyncio
    async def test_callbacks_receive_progress_and_errors(self, orchestrator: BatchOrchestrator) -> None:
        progress: list[BatchProgress] = []
        errors: list[BatchItemFailure] = []
        observer = CallbackObserver(on_progress=progress.append, on_error=errors.append)

        await orchestrator.run(["B000000001", "bad", "B000000003"], chunk_size=1, observers=[observer])

        assert [(event.current, event.total) for event in progress] == [(1, 3), (2, 3), (3, 3)]
        assert [event.item for event in progress] == ["B000000001", "bad", "B000000003"]
        assert len(errors) == 1
        assert errors[0].input == "bad"

    @pytest.mark.asyncio
    async def test_stage_sequence_for_success(self, orchestrator: BatchOrchestrator) -> None:
        observer = RecordingObserver()
        orchestrator.subscribe(observer)

        await orchestrator.run(["B000000001"])

        assert [stage for _, stage in observer.stages] == [
            ItemStage.NORMALIZING,
            ItemStage.SCRAPING,
            ItemStage.ANALYZING,
            ItemStage.EXTRACTING,
            ItemStage.DONE,
        ]
        assert len(observer.completed) == 1
        assert observer.failed == []
        assert observer.batches == 1

    @pytest.mark.asyncio
    async def test_observer_exception_does_not_fail_item(self, orchestrator: BatchOrchestrator) -> None:
        recorder = RecordingObserver()

        batch = await orchestrator.run(["B000000001"], observers=[ExplodingObserver(), recorder])

        assert batch.summary.succeeded == 1
        assert len(recorder.progress) == 1
