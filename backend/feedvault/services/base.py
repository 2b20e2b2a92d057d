"""
Base Service Interface

Pipeline services inherit from this base class.
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class BaseService(ABC, Generic[InputT, OutputT]):
    """
    Base class for pipeline services.

    Each service:
    - Has a defined input type
    - Has a defined output type
    - Can check its health
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Service name for logging."""
        pass

    @abstractmethod
    async def execute(self, input_data: InputT) -> OutputT:
        """
        Execute the service's main function.

        Args:
            input_data: Input conforming to InputT

        Returns:
            Output conforming to OutputT

        Raises:
            ServiceError: If execution fails
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if service is healthy and can process requests."""
        pass


class ServiceError(Exception):
    """Base exception for service errors."""

    def __init__(self, service_name: str, message: str, details: dict = None):
        self.service_name = service_name
        self.message = message
        self.details = details or {}
        super().__init__(f"[{service_name}] {message}")


class ExternalAPIError(ServiceError):
    """Fetching a source failed (network, HTTP status or unparseable body)."""
    pass


class StorageError(ServiceError):
    """A storage backend (raw store, queue, curated store) failed."""
    pass


class RawObjectNotFoundError(StorageError):
    """No raw object exists at the requested location."""
    pass


class MappingError(ServiceError):
    """A raw payload could not be projected into curated records."""
    pass


class InvalidCursorError(ServiceError):
    """Pagination cursor could not be decoded."""
    pass


class RecordNotFoundError(ServiceError):
    """No curated record with the requested id."""

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__("RecordQueryService", "Record not found", {"id": record_id})


class BatchProcessingError(ServiceError):
    """At least one message of a transform batch failed."""
    pass
