"""
Records API Endpoints

List curated records (optionally by source) and fetch one by id.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query

from feedvault.api.v1.deps import get_container
from feedvault.schemas.pipeline import CuratedRecord, RecordList
from feedvault.services.container import PipelineContainer

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=RecordList)
async def list_records(
    source: Optional[str] = Query(None, description="Only records from this source"),
    limit: Optional[str] = Query(None, description="Page size (default 20, max 100)"),
    cursor: Optional[str] = Query(None, description="Opaque cursor from the previous page"),
    container: PipelineContainer = Depends(get_container),
):
    """
    List curated records.

    Pass the returned `cursor` back to fetch the next page; it is null on the
    last page. An unparseable `limit` falls back to the default page size.
    """
    return await container.records.list_records(source=source, cursor=cursor, limit=limit)


@router.get("/{record_id}", response_model=CuratedRecord)
async def get_record(
    record_id: str,
    container: PipelineContainer = Depends(get_container),
):
    """Get one curated record by id."""
    return await container.records.get_record(record_id)
