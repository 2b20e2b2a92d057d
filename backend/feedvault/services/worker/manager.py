"""
Pipeline Worker

Runs the pipeline in the background:
- Ingest loop: captures every source on a fixed interval
- Consumer loop: receives capture batches from the queue and transforms them

Acknowledgement:
- partial_batch_ack=True: ack messages that succeeded, fail (redeliver) the rest
- partial_batch_ack=False: any failure fails the whole batch
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from feedvault.schemas.pipeline import BatchResult
from feedvault.services.base import StorageError
from feedvault.services.queue import MessageQueue, ReceivedMessage
from feedvault.services.ingestion import IngestionService
from feedvault.services.transform import TransformService

logger = logging.getLogger(__name__)


class WorkerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


async def consume_batch(
    queue: MessageQueue,
    transform: TransformService,
    batch_size: int = 10,
    partial_ack: bool = True,
) -> Optional[BatchResult]:
    """
    Receive one batch, transform it and acknowledge per policy.
    Returns None when the queue is empty.
    """
    messages = await queue.receive(batch_size)
    if not messages:
        return None

    batch = await transform.process_batch(messages)

    if partial_ack:
        outcomes = [result.ok for result in batch.results]
    elif batch.succeeded:
        outcomes = [True] * len(messages)
    else:
        logger.warning(f"Batch failed, returning {len(messages)} messages for redelivery")
        outcomes = [False] * len(messages)

    await _settle(queue, messages, outcomes)
    return batch


async def _settle(queue: MessageQueue, messages: list[ReceivedMessage], outcomes: list[bool]) -> None:
    """
    Ack or fail each message. If the queue errors partway, the messages not yet
    settled are handed back for redelivery before the error propagates.
    """
    settled = 0
    try:
        for received, ok in zip(messages, outcomes):
            if ok:
                await queue.ack(received)
            else:
                await queue.fail(received)
            settled += 1
    except StorageError as e:
        unsettled = messages[settled:]
        logger.error(f"Queue error while settling batch, returning {len(unsettled)} messages: {e}")
        for received in unsettled:
            try:
                await queue.fail(received)
            except StorageError as retry_error:
                logger.error(f"Message {received.message_id} left in flight: {retry_error}")
        raise


class PipelineWorker:
    """
    Background ingest + transform loops.

    Usage:
        worker = PipelineWorker(ingestion, transform, queue)
        await worker.start()
        ...
        await worker.stop()
    """

    def __init__(
        self,
        ingestion: IngestionService,
        transform: TransformService,
        queue: MessageQueue,
        ingest_interval: float = 3600.0,
        poll_interval: float = 5.0,
        batch_size: int = 10,
        partial_ack: bool = True,
    ):
        self._ingestion = ingestion
        self._transform = transform
        self._queue = queue
        self._ingest_interval = ingest_interval
        self._poll_interval = poll_interval
        self._batch_size = batch_size
        self._partial_ack = partial_ack
        self._tasks: list[asyncio.Task] = []
        self._state = WorkerState.STOPPED

    @property
    def state(self) -> WorkerState:
        return self._state

    async def start(self) -> None:
        if self._state == WorkerState.RUNNING:
            logger.warning("Pipeline worker already running")
            return

        recovered = await self._queue.recover_inflight()
        if recovered:
            logger.info(f"Returned {recovered} unacknowledged messages to the queue")

        self._state = WorkerState.RUNNING
        self._tasks = [
            asyncio.create_task(self._ingest_loop(), name="feedvault-ingest"),
            asyncio.create_task(self._consume_loop(), name="feedvault-consume"),
        ]
        logger.info("Pipeline worker started")

    async def stop(self) -> None:
        self._state = WorkerState.STOPPED
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        logger.info("Pipeline worker stopped")

    async def _ingest_loop(self) -> None:
        while self._state == WorkerState.RUNNING:
            try:
                await self._ingestion.run()
            except Exception as e:
                logger.error(f"Ingestion run failed: {e}")
            await asyncio.sleep(self._ingest_interval)

    async def _consume_loop(self) -> None:
        while self._state == WorkerState.RUNNING:
            try:
                batch = await consume_batch(
                    self._queue,
                    self._transform,
                    batch_size=self._batch_size,
                    partial_ack=self._partial_ack,
                )
            except Exception as e:
                logger.error(f"Consumer loop error: {e}")
                batch = None

            # Keep draining while batches succeed
            if batch is None or not batch.succeeded:
                await asyncio.sleep(self._poll_interval)
