"""
API v1 Router

Query, analytics and pipeline-trigger endpoints.
"""

from fastapi import APIRouter, Depends

from feedvault.core.security import verify_api_key
from feedvault.api.v1.endpoints import records, analytics, pipeline

router = APIRouter(dependencies=[Depends(verify_api_key)])

router.include_router(records.router, prefix="/records", tags=["Records"])
router.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])
router.include_router(pipeline.router, tags=["Pipeline"])
