"""
Ingestion Service Interface

Defines the contract for the capture stage.
"""

from abc import abstractmethod
from typing import Optional

from feedvault.services.base import BaseService
from feedvault.schemas.pipeline import IngestionRunResult, SourceDescriptor


class IngestionServiceInterface(
    BaseService[Optional[list[SourceDescriptor]], IngestionRunResult]
):
    """
    Ingestion Service Contract.

    INPUT: optional list of SourceDescriptor (defaults to the configured sources)

    OUTPUT: IngestionRunResult
        - results: one SourceOutcome per source (success or error)
        - timestamp: completion time

    SIDE EFFECTS (only for sources fetched successfully):
        - raw payload written to the Raw Store
        - one QueueMessage sent
    """

    @property
    def name(self) -> str:
        return "IngestionService"

    @abstractmethod
    async def execute(
        self, input_data: Optional[list[SourceDescriptor]] = None
    ) -> IngestionRunResult:
        """Capture every source once."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
