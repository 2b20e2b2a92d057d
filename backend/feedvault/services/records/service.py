"""
Record Query Service

Read-only access to the curated store: listing with cursor pagination,
lookup by id, and aggregate analytics. Stateless between calls.
"""

import logging
from typing import Any, Optional

from feedvault.schemas.pipeline import AnalyticsResponse, CuratedRecord, RecordList
from feedvault.services.base import InvalidCursorError, RecordNotFoundError
from feedvault.services.records.analytics import compute_analytics
from feedvault.services.records.cursor import decode_cursor, encode_cursor
from feedvault.services.storage import CuratedStore

logger = logging.getLogger(__name__)


class RecordQueryService:
    """
    Serves curated records to the API.

    Usage:
        service = RecordQueryService(curated_store)
        page = await service.list_records(source="jsonplaceholder", limit=20)
        more = await service.list_records(source="jsonplaceholder", cursor=page.cursor)
    """

    def __init__(
        self,
        curated_store: CuratedStore,
        default_page_size: int = 20,
        max_page_size: int = 100,
        scan_page_size: int = 500,
    ):
        self._store = curated_store
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size
        self._scan_page_size = scan_page_size

    def coerce_limit(self, limit: Any) -> int:
        """Integer page size; unparseable or non-positive means the default."""
        try:
            value = int(limit)
        except (TypeError, ValueError):
            return self.default_page_size
        if value < 1:
            return self.default_page_size
        return min(value, self.max_page_size)

    async def list_records(
        self,
        source: Optional[str] = None,
        cursor: Optional[str] = None,
        limit: Any = None,
    ) -> RecordList:
        """
        List records, optionally for one source.

        Filtered listing goes through the source index; unfiltered listing is a
        full traversal. Both resume from `cursor`.
        """
        page_size = self.coerce_limit(limit)
        after = decode_cursor(cursor)

        if source:
            if after is not None and after.get("source", source) != source:
                raise InvalidCursorError(
                    "RecordQueryService",
                    "Cursor belongs to a different source",
                    {"cursor": cursor},
                )
            page = await self._store.query(source, limit=page_size, after=after)
        else:
            page = await self._store.scan(limit=page_size, after=after)

        return RecordList(
            records=page.records,
            count=len(page.records),
            cursor=encode_cursor(page.next_key),
        )

    async def get_record(self, record_id: str) -> CuratedRecord:
        record = await self._store.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record

    async def analytics(self) -> AnalyticsResponse:
        """
        Aggregate over a full traversal of the store.

        Concurrent writes may or may not be included; the result is a
        best-effort snapshot.
        """
        records = [r async for r in self._store.scan_all(page_size=self._scan_page_size)]
        logger.info(f"Computed analytics over {len(records)} records")
        return compute_analytics(records)
