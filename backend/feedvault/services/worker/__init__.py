"""
Worker module for FeedVault.

Background ingestion schedule and queue consumer.
"""

from feedvault.services.worker.manager import (
    PipelineWorker,
    WorkerState,
    consume_batch,
)

__all__ = [
    "PipelineWorker",
    "WorkerState",
    "consume_batch",
]
