"""
Ingestion Service Implementation

For each configured source: fetch the current payload, persist it raw, and
notify the Transformer through the queue.

Sources are isolated from each other: a fetch, store or queue failure is
reported as that source's error and never stops the others. Nothing is
retried here; retries belong to the scheduler.
"""

import asyncio
import json
import logging
from typing import Any, Optional

from feedvault.core.digest import content_digest
from feedvault.core.timeutil import utc_now_iso
from feedvault.schemas.pipeline import (
    IngestionRunResult,
    OutcomeStatus,
    QueueMessage,
    RawCapture,
    SourceDescriptor,
    SourceOutcome,
)
from feedvault.services.base import StorageError
from feedvault.services.ingestion.fetcher import SourceFetcher
from feedvault.services.ingestion.interface import IngestionServiceInterface
from feedvault.services.queue import MessageQueue
from feedvault.services.storage import RawStore, build_raw_key

logger = logging.getLogger(__name__)


def count_items(payload: Any) -> int:
    """Item count by payload shape: list length, nested `results` length, else 1."""
    if isinstance(payload, list):
        return len(payload)
    if isinstance(payload, dict) and isinstance(payload.get("results"), list):
        return len(payload["results"])
    return 1


class IngestionService(IngestionServiceInterface):
    """
    Ingestion Service.

    Runs sources concurrently, at most `concurrency` at a time.
    """

    def __init__(
        self,
        sources: list[SourceDescriptor],
        fetcher: SourceFetcher,
        raw_store: RawStore,
        queue: MessageQueue,
        concurrency: int = 4,
        storage_timeout: float = 5.0,
    ):
        self._sources = list(sources)
        self._fetcher = fetcher
        self._raw_store = raw_store
        self._queue = queue
        self._concurrency = max(1, concurrency)
        self._storage_timeout = storage_timeout

    @property
    def sources(self) -> list[SourceDescriptor]:
        return list(self._sources)

    async def execute(
        self, input_data: Optional[list[SourceDescriptor]] = None
    ) -> IngestionRunResult:
        """Capture every source once and summarize the outcomes."""
        sources = input_data if input_data is not None else self._sources
        logger.info(f"Starting ingestion of {len(sources)} sources")

        semaphore = asyncio.Semaphore(self._concurrency)

        async def _guarded(source: SourceDescriptor) -> SourceOutcome:
            async with semaphore:
                return await self._ingest_source(source)

        results = await asyncio.gather(*(_guarded(s) for s in sources))

        run = IngestionRunResult(results=list(results), timestamp=utc_now_iso())
        logger.info(
            f"Ingestion completed: {len(run.results) - len(run.failed)} succeeded, "
            f"{len(run.failed)} failed"
        )
        return run

    async def run(self) -> IngestionRunResult:
        return await self.execute(None)

    async def _ingest_source(self, source: SourceDescriptor) -> SourceOutcome:
        try:
            logger.info(f"Fetching data from {source.name}")
            payload = await self._fetcher.fetch(source)

            capture = await self._store_raw(source, payload)
            logger.info(f"Stored raw capture: {capture.storage_key}")

            message = QueueMessage(
                source_name=source.name,
                record_kind=source.record_kind,
                raw_location=capture.storage_key,
                content_hash=capture.content_hash,
                captured_at=capture.captured_at,
                record_count=capture.record_count,
            )
            await self._bounded(
                self._queue.send(message, {"source": source.name}),
                "Queue send",
            )
            logger.info(f"Sent capture of {source.name} to queue")

            return SourceOutcome(
                source=source.name,
                status=OutcomeStatus.SUCCESS,
                raw_location=capture.storage_key,
                record_count=capture.record_count,
            )

        except Exception as e:
            message = getattr(e, "message", None) or str(e) or e.__class__.__name__
            logger.error(f"Ingestion failed for {source.name}: {message}")
            return SourceOutcome(
                source=source.name,
                status=OutcomeStatus.ERROR,
                error=message,
            )

    async def _store_raw(self, source: SourceDescriptor, payload: Any) -> RawCapture:
        captured_at = utc_now_iso()
        content_hash = content_digest(payload)
        key = build_raw_key(source.name, captured_at, content_hash)

        body = json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")
        metadata = {
            "source": source.name,
            "type": source.record_kind,
            "captured_at": captured_at,
            "hash": content_hash,
        }
        location = await self._bounded(
            self._raw_store.put(key, body, metadata),
            "Raw store write",
        )

        return RawCapture(
            source_name=source.name,
            storage_key=location,
            content_hash=content_hash,
            record_count=count_items(payload),
            captured_at=captured_at,
        )

    async def _bounded(self, coro, operation: str):
        try:
            return await asyncio.wait_for(coro, self._storage_timeout)
        except asyncio.TimeoutError as e:
            raise StorageError(
                self.name, f"{operation} timed out after {self._storage_timeout}s"
            ) from e

    async def health_check(self) -> bool:
        """Queue reachable."""
        try:
            await self._queue.stats()
            return True
        except StorageError:
            return False
