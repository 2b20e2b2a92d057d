"""
Curated Store

Table of normalized records keyed by id, with a secondary index on source.

Contract:
    put_if_absent(record) -> WriteOutcome.CREATED | WriteOutcome.ALREADY_EXISTS
    get(id)               -> CuratedRecord | None
    query(source, ...)    -> RecordPage   (secondary index)
    scan(...)             -> RecordPage   (full traversal, resumable)

The primary key constraint makes put_if_absent atomic per id: of several
concurrent writers exactly one sees CREATED, the others ALREADY_EXISTS.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import AsyncIterator, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from feedvault.db.models import CuratedRecordRow
from feedvault.schemas.pipeline import CuratedRecord, RecordPage
from feedvault.services.base import StorageError

logger = logging.getLogger(__name__)


class WriteOutcome(str, Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


def _to_row(record: CuratedRecord) -> CuratedRecordRow:
    return CuratedRecordRow(
        id=record.id,
        source=record.source,
        kind=record.kind,
        captured_at=record.captured_at,
        processed_at=record.processed_at,
        fingerprint=record.fingerprint,
        raw_location=record.raw_location,
        payload=record.payload.model_dump(),
    )


def _from_row(row: CuratedRecordRow) -> CuratedRecord:
    return CuratedRecord(
        id=row.id,
        source=row.source,
        kind=row.kind,
        captured_at=row.captured_at,
        processed_at=row.processed_at,
        fingerprint=row.fingerprint,
        raw_location=row.raw_location,
        payload=row.payload,
    )


class CuratedStore:
    """
    SQLAlchemy-backed curated store.

    Resume keys are plain dicts: {"id": ...} for scans and
    {"source": ..., "id": ...} for source queries.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout: float = 5.0,
    ):
        self._session_factory = session_factory
        self._timeout = timeout
        bind = session_factory.kw.get("bind")
        # SQLite has a single writer and in-memory databases share one connection
        self._lock: Optional[asyncio.Lock] = (
            asyncio.Lock() if bind is not None and bind.dialect.name == "sqlite" else None
        )

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        if self._lock is None:
            async with self._session_factory() as session:
                yield session
        else:
            async with self._lock:
                async with self._session_factory() as session:
                    yield session

    async def _bounded(self, coro, operation: str):
        try:
            return await asyncio.wait_for(coro, self._timeout)
        except asyncio.TimeoutError as e:
            raise StorageError("CuratedStore", f"{operation} timed out after {self._timeout}s") from e
        except SQLAlchemyError as e:
            raise StorageError("CuratedStore", f"{operation} failed: {e}") from e

    # ============ Writes ============

    async def put_if_absent(self, record: CuratedRecord) -> WriteOutcome:
        """Insert the record unless a record with the same id already exists."""
        return await self._bounded(self._put_if_absent(record), f"put {record.id}")

    async def _put_if_absent(self, record: CuratedRecord) -> WriteOutcome:
        async with self._session() as session:
            session.add(_to_row(record))
            try:
                await session.commit()
                return WriteOutcome.CREATED
            except IntegrityError as e:
                await session.rollback()
                existing = await session.get(CuratedRecordRow, record.id)
                if existing is not None:
                    return WriteOutcome.ALREADY_EXISTS
                raise StorageError("CuratedStore", f"Constraint violated for {record.id}: {e}") from e

    # ============ Reads ============

    async def get(self, record_id: str) -> Optional[CuratedRecord]:
        return await self._bounded(self._get(record_id), f"get {record_id}")

    async def _get(self, record_id: str) -> Optional[CuratedRecord]:
        async with self._session() as session:
            row = await session.get(CuratedRecordRow, record_id)
            return _from_row(row) if row is not None else None

    async def scan(self, limit: int, after: Optional[dict] = None) -> RecordPage:
        """Return up to `limit` records ordered by id, resuming after `after`."""
        stmt = select(CuratedRecordRow)
        if after:
            stmt = stmt.where(CuratedRecordRow.id > after["id"])
        return await self._bounded(self._page(stmt, limit, source=None), "scan")

    async def query(
        self,
        source: str,
        limit: int,
        after: Optional[dict] = None,
    ) -> RecordPage:
        """Return up to `limit` records of one source via the source index."""
        stmt = select(CuratedRecordRow).where(CuratedRecordRow.source == source)
        if after:
            stmt = stmt.where(CuratedRecordRow.id > after["id"])
        return await self._bounded(self._page(stmt, limit, source=source), f"query source={source}")

    async def _page(self, stmt, limit: int, source: Optional[str]) -> RecordPage:
        # One extra row tells whether another page exists
        stmt = stmt.order_by(CuratedRecordRow.id).limit(limit + 1)
        async with self._session() as session:
            result = await session.execute(stmt)
            rows = list(result.scalars().all())

        has_more = len(rows) > limit
        records = [_from_row(r) for r in rows[:limit]]

        next_key = None
        if has_more and records:
            next_key = {"id": records[-1].id}
            if source is not None:
                next_key = {"source": source, "id": records[-1].id}

        return RecordPage(records=records, next_key=next_key)

    async def scan_all(self, page_size: int = 500) -> AsyncIterator[CuratedRecord]:
        """Traverse the whole table page by page."""
        after = None
        while True:
            page = await self.scan(limit=page_size, after=after)
            for record in page.records:
                yield record
            if page.next_key is None:
                break
            after = page.next_key

    async def health_check(self) -> bool:
        try:
            await self.scan(limit=1)
            return True
        except StorageError as e:
            logger.warning(f"Curated store health check failed: {e}")
            return False
