"""
Service layer exports.
"""

from insight_pipeline.services.batch_orchestrator import (
    BatchOrchestrator,
    build_batch_orchestrator,
)
from insight_pipeline.services.observers import BatchObserver, CallbackObserver

__all__ = [
    "BatchObserver",
    "BatchOrchestrator",
    "CallbackObserver",
    "build_batch_orchestrator",
]
