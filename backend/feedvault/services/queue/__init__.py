"""
Queue module for FeedVault.

Provides the at-least-once capture queue between the Ingestor and the
Transformer (Redis, with an in-memory fallback).
"""

from feedvault.services.queue.redis_queue import (
    MessageQueue,
    RedisMessageQueue,
    InMemoryMessageQueue,
    ReceivedMessage,
    get_message_queue,
    init_redis,
    close_redis,
)

__all__ = [
    "MessageQueue",
    "RedisMessageQueue",
    "InMemoryMessageQueue",
    "ReceivedMessage",
    "get_message_queue",
    "init_redis",
    "close_redis",
]
