"""
Transform Service Implementation

Consumes capture messages, reads the raw payload, maps it into curated
records and writes each one insert-only-if-absent.

Per message: received → raw-fetched → mapped → each-item-written, or failed.
Failures are reported per message in the BatchResult; whether a failure
fails the whole batch is the consumer's decision (BatchResult.raise_for_failures
for all-or-nothing, per-message ack/fail otherwise).
"""

import asyncio
import json
import logging
from typing import Iterable

from pydantic import ValidationError

from feedvault.core.timeutil import utc_now_iso
from feedvault.schemas.pipeline import (
    BatchResult,
    MessageResult,
    OutcomeStatus,
    QueueMessage,
    SourceDescriptor,
)
from feedvault.services.base import MappingError
from feedvault.services.queue import ReceivedMessage
from feedvault.services.storage import CuratedStore, RawStore, WriteOutcome
from feedvault.services.transform.interface import TransformServiceInterface
from feedvault.services.transform.mappers import map_capture

logger = logging.getLogger(__name__)


class TransformService(TransformServiceInterface):
    """
    Transform Service.

    Messages of a batch run concurrently (at most `concurrency` at a time),
    each bounded by `message_timeout` seconds.
    """

    def __init__(
        self,
        raw_store: RawStore,
        curated_store: CuratedStore,
        sources: Iterable[SourceDescriptor] = (),
        concurrency: int = 8,
        message_timeout: float = 30.0,
    ):
        self._raw_store = raw_store
        self._curated_store = curated_store
        self._item_limits = {s.name: s.item_limit for s in sources if s.item_limit}
        self._concurrency = max(1, concurrency)
        self._message_timeout = message_timeout

    async def execute(self, input_data: list[ReceivedMessage]) -> BatchResult:
        logger.info(f"Processing {len(input_data)} messages")
        semaphore = asyncio.Semaphore(self._concurrency)

        async def _guarded(received: ReceivedMessage) -> MessageResult:
            async with semaphore:
                return await self.process_message(received)

        results = await asyncio.gather(*(_guarded(m) for m in input_data))
        batch = BatchResult(results=list(results))

        if not batch.succeeded:
            logger.warning(
                f"{len(batch.failed_message_ids)} of {len(batch.results)} messages failed"
            )
        return batch

    async def process_batch(self, messages: list[ReceivedMessage]) -> BatchResult:
        return await self.execute(messages)

    async def process_message(self, received: ReceivedMessage) -> MessageResult:
        """Process one message; never raises for processing failures."""
        try:
            return await asyncio.wait_for(self._process(received), self._message_timeout)
        except asyncio.TimeoutError:
            error = f"Timed out after {self._message_timeout}s"
        except Exception as e:
            error = getattr(e, "message", None) or str(e) or e.__class__.__name__

        logger.error(f"Error processing message {received.message_id}: {error}")
        return MessageResult(
            message_id=received.message_id,
            status=OutcomeStatus.ERROR,
            error=error,
        )

    async def _process(self, received: ReceivedMessage) -> MessageResult:
        try:
            message = QueueMessage.model_validate_json(received.body)
        except ValidationError as e:
            raise MappingError(self.name, f"Malformed queue message: {e}") from e

        logger.info(f"Processing capture of {message.source_name}: {message.raw_location}")

        raw = await self._raw_store.get(message.raw_location)
        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MappingError(self.name, f"Raw object is not JSON: {message.raw_location}") from e

        records = map_capture(
            payload,
            message,
            processed_at=utc_now_iso(),
            item_limit=self._item_limits.get(message.source_name),
        )

        written = existing = 0
        for record in records:
            outcome = await self._curated_store.put_if_absent(record)
            if outcome == WriteOutcome.CREATED:
                written += 1
                logger.info(f"Stored record: {record.id}")
            else:
                existing += 1
                logger.info(f"Record exists (idempotent): {record.id}")

        return MessageResult(
            message_id=received.message_id,
            status=OutcomeStatus.SUCCESS,
            source=message.source_name,
            processed_count=len(records),
            written_count=written,
            existing_count=existing,
        )

    async def health_check(self) -> bool:
        return await self._curated_store.health_check()
