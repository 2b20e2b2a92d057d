"""
Ingestion Service

CONTRACT:
    Input:  configured SourceDescriptors (+ a trigger)
    Output: IngestionRunResult

RESPONSIBILITIES:
    - Fetch each source's current payload
    - Persist the payload unmodified in the Raw Store
    - Emit one QueueMessage per successful capture
    - Isolate failures per source

NO TRANSFORMATION - records are normalized by the Transformer.
"""

from feedvault.services.ingestion.interface import IngestionServiceInterface
from feedvault.services.ingestion.fetcher import SourceFetcher, HttpSourceFetcher
from feedvault.services.ingestion.service import IngestionService, count_items

__all__ = [
    "IngestionServiceInterface",
    "SourceFetcher",
    "HttpSourceFetcher",
    "IngestionService",
    "count_items",
]
