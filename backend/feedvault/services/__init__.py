"""
FeedVault Services

Service layer containing the pipeline logic.
Each service has a defined interface (contract) and implementation.
"""

from feedvault.services.base import BaseService, ServiceError

__all__ = ["BaseService", "ServiceError"]
