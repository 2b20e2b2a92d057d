"""
Record query module for FeedVault.

Listing, lookup and analytics over the curated store.
"""

from feedvault.services.records.service import RecordQueryService
from feedvault.services.records.analytics import compute_analytics, TIMELINE_DAYS
from feedvault.services.records.cursor import encode_cursor, decode_cursor

__all__ = [
    "RecordQueryService",
    "compute_analytics",
    "TIMELINE_DAYS",
    "encode_cursor",
    "decode_cursor",
]
