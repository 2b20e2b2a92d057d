"""
Pipeline wiring.

Builds the stores, queue and services once and hands them to the API and the
background worker. Every service receives its collaborators explicitly, so
tests can assemble a container from in-memory parts.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from feedvault.core.config import Settings
from feedvault.services.ingestion import HttpSourceFetcher, IngestionService, SourceFetcher
from feedvault.services.queue import MessageQueue
from feedvault.services.records import RecordQueryService
from feedvault.services.storage import CuratedStore, FileRawStore, RawStore
from feedvault.services.transform import TransformService

logger = logging.getLogger(__name__)


@dataclass
class PipelineContainer:
    settings: Settings
    raw_store: RawStore
    queue: MessageQueue
    curated_store: CuratedStore
    fetcher: SourceFetcher
    ingestion: IngestionService
    transform: TransformService
    records: RecordQueryService

    async def close(self) -> None:
        await self.fetcher.close()


def build_container(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    queue: MessageQueue,
    raw_store: Optional[RawStore] = None,
    fetcher: Optional[SourceFetcher] = None,
) -> PipelineContainer:
    raw_store = raw_store or FileRawStore(Path(settings.raw_store_dir))
    fetcher = fetcher or HttpSourceFetcher(timeout=settings.fetch_timeout_seconds)
    curated_store = CuratedStore(session_factory, timeout=settings.storage_timeout_seconds)

    container = PipelineContainer(
        settings=settings,
        raw_store=raw_store,
        queue=queue,
        curated_store=curated_store,
        fetcher=fetcher,
        ingestion=IngestionService(
            sources=settings.sources,
            fetcher=fetcher,
            raw_store=raw_store,
            queue=queue,
            concurrency=settings.ingest_concurrency,
            storage_timeout=settings.storage_timeout_seconds,
        ),
        transform=TransformService(
            raw_store=raw_store,
            curated_store=curated_store,
            sources=settings.sources,
            concurrency=settings.transform_concurrency,
            message_timeout=settings.message_timeout_seconds,
        ),
        records=RecordQueryService(
            curated_store,
            default_page_size=settings.default_page_size,
            max_page_size=settings.max_page_size,
        ),
    )
    logger.info(
        f"Pipeline ready: {len(settings.sources)} sources, queue={queue.__class__.__name__}"
    )
    return container
