"""
Source-kind mappers.

One pure function per known record kind projects a raw payload into curated
record candidates. Unknown kinds map to no records.
"""

import logging
from typing import Any, Callable, Optional

from feedvault.core.digest import content_digest, record_id
from feedvault.schemas.pipeline import (
    CuratedRecord,
    PostPayload,
    QueueMessage,
    RecordKind,
    UserPayload,
)
from feedvault.services.base import MappingError

logger = logging.getLogger(__name__)

Mapper = Callable[[Any, QueueMessage, str, Optional[int]], list[CuratedRecord]]


def _envelope(message: QueueMessage, item: Any, item_id: Any, processed_at: str) -> dict:
    return {
        "id": record_id(message.source_name, item_id, message.content_hash),
        "source": message.source_name,
        "kind": message.record_kind,
        "captured_at": message.captured_at,
        "processed_at": processed_at,
        "fingerprint": content_digest(item),
        "raw_location": message.raw_location,
    }


def map_posts(
    payload: Any,
    message: QueueMessage,
    processed_at: str,
    item_limit: Optional[int] = None,
) -> list[CuratedRecord]:
    """Top-level list of {id, userId, title, body}."""
    if not isinstance(payload, list):
        return []

    items = payload[:item_limit] if item_limit else payload
    records = []
    for index, item in enumerate(items):
        if not isinstance(item, dict) or item.get("id") is None:
            raise MappingError(
                message.source_name, f"Post at index {index} has no id"
            )
        user_id = item.get("userId")
        records.append(
            CuratedRecord(
                **_envelope(message, item, item["id"], processed_at),
                payload=PostPayload(
                    title=item.get("title") or "",
                    body=item.get("body") or "",
                    user_id=str(user_id) if user_id is not None else "",
                ),
            )
        )
    return records


def map_users(
    payload: Any,
    message: QueueMessage,
    processed_at: str,
    item_limit: Optional[int] = None,
) -> list[CuratedRecord]:
    """{"results": [profile, ...]} where each profile has login.uuid and name.first/last."""
    users = payload.get("results") if isinstance(payload, dict) else None
    if not isinstance(users, list):
        return []

    items = users[:item_limit] if item_limit else users
    records = []
    for index, user in enumerate(items):
        try:
            uuid = user["login"]["uuid"]
            name = f"{user['name']['first']} {user['name']['last']}"
        except (KeyError, TypeError) as e:
            raise MappingError(
                message.source_name, f"Profile at index {index} is missing {e}"
            ) from e

        location = user.get("location") or {}
        records.append(
            CuratedRecord(
                **_envelope(message, user, uuid, processed_at),
                payload=UserPayload(
                    name=name,
                    email=user.get("email"),
                    country=location.get("country"),
                    gender=user.get("gender"),
                ),
            )
        )
    return records


MAPPERS: dict[str, Mapper] = {
    RecordKind.POSTS.value: map_posts,
    RecordKind.USERS.value: map_users,
}


def map_capture(
    payload: Any,
    message: QueueMessage,
    processed_at: str,
    item_limit: Optional[int] = None,
) -> list[CuratedRecord]:
    """Dispatch on the message's record kind."""
    mapper = MAPPERS.get(message.record_kind)
    if mapper is None:
        logger.warning(
            f"No mapper for kind '{message.record_kind}' (source {message.source_name})"
        )
        return []
    return mapper(payload, message, processed_at, item_limit)
