"""
Transform Service Interface

Defines the contract for the normalization stage.
"""

from abc import abstractmethod

from feedvault.services.base import BaseService
from feedvault.schemas.pipeline import BatchResult
from feedvault.services.queue import ReceivedMessage


class TransformServiceInterface(BaseService[list[ReceivedMessage], BatchResult]):
    """
    Transform Service Contract.

    INPUT: batch of ReceivedMessage (at-least-once: duplicates and redeliveries
           possible, arbitrary order across batches)

    OUTPUT: BatchResult
        - results: one MessageResult per message (success with counts, or error)

    Every write is insert-only-if-absent, so replaying a message is a no-op.
    """

    @property
    def name(self) -> str:
        return "TransformService"

    @abstractmethod
    async def execute(self, input_data: list[ReceivedMessage]) -> BatchResult:
        """Process a batch of queue messages."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass
