"""
API key check for the query surface.

When `api_key` is configured every endpoint except health requires a matching
X-Api-Key header. With no key configured the API is open.
"""

import hmac
import logging
from typing import Optional

from fastapi import Header, HTTPException, Request

logger = logging.getLogger(__name__)


async def verify_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(None, alias="X-Api-Key"),
) -> None:
    expected = request.app.state.settings.api_key
    if not expected:
        return

    if x_api_key is None or not hmac.compare_digest(x_api_key, expected):
        logger.warning(f"Rejected request with invalid API key: {request.method} {request.url.path}")
        raise HTTPException(
            status_code=401,
            detail={"error": "Unauthorized", "message": "Missing or invalid API key"},
        )
