"""
Pipeline API Endpoints

Manual triggers for the ingest and transform stages, useful when the
background worker is disabled.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query

from feedvault.api.v1.deps import get_container
from feedvault.schemas.pipeline import BatchResult, IngestionRunResult
from feedvault.services.container import PipelineContainer
from feedvault.services.worker import consume_batch

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/ingest", response_model=IngestionRunResult)
async def run_ingestion(container: PipelineContainer = Depends(get_container)):
    """
    Capture every configured source once.

    Always returns 200; per-source failures are reported in `results`.
    """
    result = await container.ingestion.run()
    if result.failed:
        logger.warning(f"Ingestion finished with {len(result.failed)} failed sources")
    return result


@router.post("/transform", response_model=BatchResult)
async def run_transform(
    batch_size: Optional[int] = Query(None, ge=1, le=100, description="Messages to receive"),
    container: PipelineContainer = Depends(get_container),
):
    """
    Receive one batch from the queue and transform it.

    Messages are acknowledged according to `partial_batch_ack`. An empty queue
    yields an empty result list.
    """
    settings = container.settings
    batch = await consume_batch(
        container.queue,
        container.transform,
        batch_size=batch_size or settings.transform_batch_size,
        partial_ack=settings.partial_batch_ack,
    )
    if batch is None:
        return BatchResult(results=[])
    return batch
