"""
Redis-backed capture queue with at-least-once delivery.

Keys:
- {name}           → list of pending envelopes (LPUSH in, LMOVE out)
- {name}:inflight  → envelopes received but not yet acknowledged
- {name}:dead      → envelopes that exceeded the receive limit

Envelope: JSON {message_id, body, attributes, receive_count}

A received message stays in the in-flight list until it is acknowledged
(removed) or failed (pushed back for redelivery). Messages left in flight by
a crashed consumer are returned to the queue by recover_inflight(); the
interrupted delivery counts as a receive, so a message that keeps crashing
its consumer is still dead-lettered.
"""

import asyncio
import json
import logging
import uuid
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from typing import Optional, Dict, List, Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from feedvault.core.config import settings
from feedvault.schemas.pipeline import QueueMessage
from feedvault.services.base import StorageError

logger = logging.getLogger(__name__)

# Global Redis connection pool
_redis_pool: Optional[redis.Redis] = None


async def init_redis(url: Optional[str] = None) -> Optional[redis.Redis]:
    """
    Initialize Redis connection pool.
    Called on application startup.
    """
    global _redis_pool

    if _redis_pool is not None:
        return _redis_pool

    redis_url = url or settings.redis_url
    try:
        _redis_pool = redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
        )
        # Test connection
        await _redis_pool.ping()
        logger.info(f"Redis connected: {redis_url}")
        return _redis_pool
    except (RedisError, OSError) as e:
        logger.warning(f"Redis connection failed: {e}. Using in-memory queue.")
        _redis_pool = None
        return None


async def close_redis() -> None:
    """Close Redis connection pool."""
    global _redis_pool
    if _redis_pool:
        await _redis_pool.aclose()
        _redis_pool = None
        logger.info("Redis connection closed")


def get_redis() -> Optional[redis.Redis]:
    """Get the Redis connection pool."""
    return _redis_pool


@dataclass
class ReceivedMessage:
    """A message handed to a consumer, pending ack or fail."""

    message_id: str
    body: str
    attributes: Dict[str, str] = field(default_factory=dict)
    receive_count: int = 1
    receipt: str = ""  # Backend handle used to ack/fail


def _new_envelope(message: QueueMessage, attributes: Dict[str, str]) -> Dict[str, Any]:
    return {
        "message_id": str(uuid.uuid4()),
        "body": message.model_dump_json(),
        "attributes": attributes,
        "receive_count": 0,
    }


def _decode_envelope(raw: str) -> Dict[str, Any]:
    try:
        envelope = json.loads(raw)
        if isinstance(envelope, dict) and "body" in envelope:
            return envelope
    except json.JSONDecodeError:
        pass
    # Foreign payload pushed straight onto the list: deliver it as-is
    return {
        "message_id": f"raw-{uuid.uuid5(uuid.NAMESPACE_OID, raw)}",
        "body": raw,
        "attributes": {},
        "receive_count": 0,
    }


class MessageQueue(ABC):
    """Queue contract: send, batch receive, per-message ack/fail."""

    def __init__(self, max_receives: int = 5):
        self.max_receives = max_receives

    @abstractmethod
    async def send(self, message: QueueMessage, attributes: Optional[Dict[str, str]] = None) -> str:
        """Enqueue a message. Returns its message id."""
        pass

    @abstractmethod
    async def receive(self, max_messages: int = 10) -> List[ReceivedMessage]:
        """Receive up to `max_messages` messages (non-blocking)."""
        pass

    @abstractmethod
    async def ack(self, message: ReceivedMessage) -> None:
        """Acknowledge a processed message; it will not be delivered again."""
        pass

    @abstractmethod
    async def fail(self, message: ReceivedMessage) -> None:
        """Return a message for redelivery (or dead-letter it)."""
        pass

    @abstractmethod
    async def recover_inflight(self) -> int:
        """Return unacknowledged messages to the queue. Returns the count."""
        pass

    @abstractmethod
    async def stats(self) -> Dict[str, int]:
        """Pending / in-flight / dead-letter counts."""
        pass

    async def fail_all(self, messages: List[ReceivedMessage]) -> None:
        for message in messages:
            await self.fail(message)

    def _dead_letter(self, message: ReceivedMessage) -> bool:
        return message.receive_count >= self.max_receives

    def _interrupted(self, envelope: Dict[str, Any]) -> tuple[Dict[str, Any], bool]:
        """Envelope of an in-flight message whose delivery never finished."""
        receive_count = envelope.get("receive_count", 0) + 1
        return dict(envelope, receive_count=receive_count), receive_count >= self.max_receives


class RedisMessageQueue(MessageQueue):
    """Queue over Redis lists."""

    def __init__(self, redis_client: redis.Redis, name: str, max_receives: int = 5):
        super().__init__(max_receives)
        self._redis = redis_client
        self.name = name
        self.inflight_key = f"{name}:inflight"
        self.dead_key = f"{name}:dead"

    async def send(self, message: QueueMessage, attributes: Optional[Dict[str, str]] = None) -> str:
        envelope = _new_envelope(message, attributes or {})
        try:
            await self._redis.lpush(self.name, json.dumps(envelope))
        except RedisError as e:
            raise StorageError("MessageQueue", f"Failed to send message: {e}") from e
        return envelope["message_id"]

    async def receive(self, max_messages: int = 10) -> List[ReceivedMessage]:
        received = []
        try:
            for _ in range(max_messages):
                raw = await self._redis.lmove(self.name, self.inflight_key, "RIGHT", "LEFT")
                if raw is None:
                    break
                envelope = _decode_envelope(raw)
                received.append(
                    ReceivedMessage(
                        message_id=envelope["message_id"],
                        body=envelope["body"],
                        attributes=envelope.get("attributes", {}),
                        receive_count=envelope.get("receive_count", 0) + 1,
                        receipt=raw,
                    )
                )
        except RedisError as e:
            raise StorageError("MessageQueue", f"Failed to receive messages: {e}") from e
        return received

    async def ack(self, message: ReceivedMessage) -> None:
        try:
            await self._redis.lrem(self.inflight_key, 1, message.receipt)
        except RedisError as e:
            raise StorageError("MessageQueue", f"Failed to ack {message.message_id}: {e}") from e

    async def fail(self, message: ReceivedMessage) -> None:
        envelope = {
            "message_id": message.message_id,
            "body": message.body,
            "attributes": message.attributes,
            "receive_count": message.receive_count,
        }
        target = self.dead_key if self._dead_letter(message) else self.name
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.lrem(self.inflight_key, 1, message.receipt)
                pipe.lpush(target, json.dumps(envelope))
                await pipe.execute()
        except RedisError as e:
            raise StorageError("MessageQueue", f"Failed to requeue {message.message_id}: {e}") from e

        if target == self.dead_key:
            logger.error(f"Message {message.message_id} dead-lettered after {message.receive_count} receives")

    async def recover_inflight(self) -> int:
        recovered = dead = 0
        try:
            while True:
                raw = await self._redis.lindex(self.inflight_key, -1)
                if raw is None:
                    break
                envelope, expired = self._interrupted(_decode_envelope(raw))
                async with self._redis.pipeline(transaction=True) as pipe:
                    pipe.lrem(self.inflight_key, 1, raw)
                    if expired:
                        pipe.lpush(self.dead_key, json.dumps(envelope))
                    else:
                        # Next in line for delivery
                        pipe.rpush(self.name, json.dumps(envelope))
                    await pipe.execute()
                if expired:
                    dead += 1
                else:
                    recovered += 1
        except RedisError as e:
            raise StorageError("MessageQueue", f"Failed to recover in-flight messages: {e}") from e
        if recovered:
            logger.info(f"Recovered {recovered} in-flight messages into {self.name}")
        if dead:
            logger.error(f"Dead-lettered {dead} in-flight messages that reached {self.max_receives} receives")
        return recovered

    async def stats(self) -> Dict[str, int]:
        try:
            return {
                "pending": await self._redis.llen(self.name),
                "inflight": await self._redis.llen(self.inflight_key),
                "dead": await self._redis.llen(self.dead_key),
            }
        except RedisError as e:
            raise StorageError("MessageQueue", f"Failed to read queue stats: {e}") from e


class InMemoryMessageQueue(MessageQueue):
    """
    In-process fallback when Redis is unavailable.
    Same delivery semantics, no durability across restarts.
    """

    def __init__(self, max_receives: int = 5):
        super().__init__(max_receives)
        self._pending: deque = deque()
        self._inflight: Dict[str, Dict[str, Any]] = {}
        self.dead_letters: List[Dict[str, Any]] = []
        self._lock = asyncio.Lock()

    async def send(self, message: QueueMessage, attributes: Optional[Dict[str, str]] = None) -> str:
        envelope = _new_envelope(message, attributes or {})
        async with self._lock:
            self._pending.append(envelope)
        return envelope["message_id"]

    async def receive(self, max_messages: int = 10) -> List[ReceivedMessage]:
        received = []
        async with self._lock:
            while self._pending and len(received) < max_messages:
                envelope = self._pending.popleft()
                receipt = str(uuid.uuid4())
                self._inflight[receipt] = envelope
                received.append(
                    ReceivedMessage(
                        message_id=envelope["message_id"],
                        body=envelope["body"],
                        attributes=envelope.get("attributes", {}),
                        receive_count=envelope.get("receive_count", 0) + 1,
                        receipt=receipt,
                    )
                )
        return received

    async def ack(self, message: ReceivedMessage) -> None:
        async with self._lock:
            self._inflight.pop(message.receipt, None)

    async def fail(self, message: ReceivedMessage) -> None:
        async with self._lock:
            envelope = self._inflight.pop(message.receipt, None)
            if envelope is None:
                return
            envelope = dict(envelope, receive_count=message.receive_count)
            if self._dead_letter(message):
                self.dead_letters.append(envelope)
                logger.error(f"Message {message.message_id} dead-lettered after {message.receive_count} receives")
            else:
                self._pending.append(envelope)

    async def recover_inflight(self) -> int:
        recovered = 0
        async with self._lock:
            for stored in self._inflight.values():
                envelope, expired = self._interrupted(stored)
                if expired:
                    self.dead_letters.append(envelope)
                    logger.error(f"Message {envelope['message_id']} dead-lettered after {envelope['receive_count']} receives")
                else:
                    self._pending.append(envelope)
                    recovered += 1
            self._inflight.clear()
        return recovered

    async def stats(self) -> Dict[str, int]:
        return {
            "pending": len(self._pending),
            "inflight": len(self._inflight),
            "dead": len(self.dead_letters),
        }


def get_message_queue() -> MessageQueue:
    """Redis queue when connected, in-memory queue otherwise."""
    client = get_redis()
    if client is not None:
        return RedisMessageQueue(client, settings.queue_name, settings.queue_max_receives)
    return InMemoryMessageQueue(settings.queue_max_receives)
