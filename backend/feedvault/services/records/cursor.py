"""
Pagination cursors.

A cursor is the store's resume key serialized as JSON and encoded as URL-safe
base64, so callers can pass it back verbatim: decode_cursor(encode_cursor(k)) == k.
"""

import base64
import binascii
import json
from typing import Optional

from feedvault.services.base import InvalidCursorError


def encode_cursor(key: Optional[dict]) -> Optional[str]:
    if key is None:
        return None
    raw = json.dumps(key, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def decode_cursor(cursor: Optional[str]) -> Optional[dict]:
    if not cursor:
        return None
    try:
        # Tolerate stripped padding
        padded = cursor + "=" * (-len(cursor) % 4)
        key = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except (binascii.Error, ValueError, UnicodeError) as e:
        raise InvalidCursorError("RecordQueryService", "Invalid cursor", {"cursor": cursor}) from e

    if not isinstance(key, dict) or not isinstance(key.get("id"), str):
        raise InvalidCursorError("RecordQueryService", "Invalid cursor", {"cursor": cursor})
    return key
