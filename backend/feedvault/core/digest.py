"""
Content digests and deterministic identities.
"""

import hashlib
import json
from typing import Any

# Characters of the capture hash embedded in a record id
ID_HASH_LENGTH = 8


def canonical_json(data: Any) -> str:
    """Compact JSON serialization used for hashing."""
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def content_digest(data: Any) -> str:
    """128-bit MD5 hex digest of the compact JSON form of `data`."""
    return hashlib.md5(canonical_json(data).encode("utf-8")).hexdigest()


def record_id(source: str, item_id: Any, content_hash: str) -> str:
    """
    Deterministic curated record id.

    Re-processing the same capture for the same item always yields the same id,
    which is what makes the insert-only-if-absent write a dedup.
    """
    return f"{source}-{item_id}-{content_hash[:ID_HASH_LENGTH]}"
