"""
Storage module for FeedVault.

Provides the raw store (unmodified captures) and the curated store
(normalized records).
"""

from feedvault.services.storage.raw_store import (
    RawStore,
    FileRawStore,
    build_raw_key,
)
from feedvault.services.storage.curated_store import (
    CuratedStore,
    WriteOutcome,
)

__all__ = [
    "RawStore",
    "FileRawStore",
    "build_raw_key",
    "CuratedStore",
    "WriteOutcome",
]
