"""
Source fetchers.

Fetch the current JSON payload of a configured source.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import aiohttp

from feedvault.schemas.pipeline import SourceDescriptor
from feedvault.services.base import ExternalAPIError

logger = logging.getLogger(__name__)


class SourceFetcher(ABC):
    """Fetch contract: returns the parsed payload or raises ExternalAPIError."""

    @abstractmethod
    async def fetch(self, source: SourceDescriptor) -> Any:
        pass

    async def close(self) -> None:
        pass


class HttpSourceFetcher(SourceFetcher):
    """Fetches JSON over HTTP with a bounded total timeout per request."""

    def __init__(self, timeout: float = 10.0):
        self._timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure we have an active HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers={"Accept": "application/json", "User-Agent": "feedvault/0.1"},
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def fetch(self, source: SourceDescriptor) -> Any:
        session = await self._ensure_session()

        try:
            async with session.get(source.endpoint) as response:
                if response.status != 200:
                    raise ExternalAPIError(
                        source.name,
                        f"{source.endpoint} returned status {response.status}",
                        {"status": response.status},
                    )
                content = await response.text()
        except asyncio.TimeoutError as e:
            raise ExternalAPIError(source.name, f"Timed out after {self._timeout}s fetching {source.endpoint}") from e
        except aiohttp.ClientError as e:
            raise ExternalAPIError(source.name, f"Request to {source.endpoint} failed: {e}") from e

        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise ExternalAPIError(source.name, f"Invalid JSON from {source.endpoint}: {e}") from e
