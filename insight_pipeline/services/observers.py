"""
insight_pipeline/services/observers.py

Batch lifecycle observers.
"""

from __future__ import annotations

from collections.abc import Callable

from insight_pipeline.domain.batch import (
    BatchItemFailure,
    BatchItemSuccess,
    BatchProgress,
    BatchResult,
    ItemStage,
)


class BatchObserver:
    """
    Receives batch lifecycle events synchronously. Every hook is a no-op
    by default, so subclasses override only what they need.
    """

    def on_progress(self, progress: BatchProgress) -> None:
        """
        Called before an item begins processing.
        """

    def on_stage(self, index: int, stage: ItemStage) -> None:
        """
        Called when an item enters a new stage.
        """

    def on_item_failed(self, failure: BatchItemFailure) -> None:
        """
        Called once for every failed item.
        """

    def on_item_completed(self, success: BatchItemSuccess) -> None:
        """
        Called once for every successful item.
        """

    def on_batch_completed(self, batch: BatchResult) -> None:
        """
        Called after the last chunk settled.
        """


class CallbackObserver(BatchObserver):
    """
    Adapts plain progress/error callables to the observer interface.
    """

    def __init__(
        self,
        *,
        on_progress: Callable[[BatchProgress], None] | None = None,
        on_error: Callable[[BatchItemFailure], None] | None = None,
    ) -> None:
        self._on_progress = on_progress
        self._on_error = on_error

    def on_progress(self, progress: BatchProgress) -> None:
        if self._on_progress is not None:
            self._on_progress(progress)

    def on_item_failed(self, failure: BatchItemFailure) -> None:
        if self._on_error is not None:
            self._on_error(failure)
