"""
insight_pipeline/domain package marker.
"""

from insight_pipeline.domain.batch import (
    BatchItemFailure,
    BatchItemResult,
    BatchItemSuccess,
    BatchProgress,
    BatchResult,
    BatchSummary,
    ItemStage,
)

__all__ = [
    "BatchItemFailure",
    "BatchItemResult",
    "BatchItemSuccess",
    "BatchProgress",
    "BatchResult",
    "BatchSummary",
    "ItemStage",
]
