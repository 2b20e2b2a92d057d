"""
Transform Service

CONTRACT:
    Input:  batch of capture messages
    Output: BatchResult (one MessageResult per message)

RESPONSIBILITIES:
    - Read the raw capture referenced by each message
    - Map it with the mapper for its record kind
    - Write every record insert-only-if-absent (replay-safe)
"""

from feedvault.services.transform.interface import TransformServiceInterface
from feedvault.services.transform.mappers import MAPPERS, map_capture, map_posts, map_users
from feedvault.services.transform.service import TransformService

__all__ = [
    "TransformServiceInterface",
    "MAPPERS",
    "map_capture",
    "map_posts",
    "map_users",
    "TransformService",
]
