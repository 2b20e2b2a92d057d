"""
Analytics API Endpoint
"""

from fastapi import APIRouter, Depends

from feedvault.api.v1.deps import get_container
from feedvault.schemas.pipeline import AnalyticsResponse
from feedvault.services.container import PipelineContainer

router = APIRouter()


@router.get("", response_model=AnalyticsResponse)
async def get_analytics(container: PipelineContainer = Depends(get_container)):
    """
    Aggregate statistics over all curated records.

    Counts per source, per capture date for the 7 most recent dates, and the
    oldest/newest capture timestamps.
    """
    return await container.records.analytics()
