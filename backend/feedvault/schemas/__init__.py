"""
FeedVault Schema Contracts

Handoff shapes between the Ingestor, the Transformer and the Query/Analytics
Service. All components exchange these models, never raw dicts.
"""

from feedvault.schemas.pipeline import (
    RecordKind,
    OutcomeStatus,
    SourceDescriptor,
    RawCapture,
    QueueMessage,
    PostPayload,
    UserPayload,
    CuratedRecord,
    SourceOutcome,
    IngestionRunResult,
    MessageResult,
    BatchResult,
    RecordPage,
    RecordList,
    TimelinePoint,
    AnalyticsSummary,
    AnalyticsResponse,
)

__all__ = [
    "RecordKind",
    "OutcomeStatus",
    "SourceDescriptor",
    "RawCapture",
    "QueueMessage",
    "PostPayload",
    "UserPayload",
    "CuratedRecord",
    "SourceOutcome",
    "IngestionRunResult",
    "MessageResult",
    "BatchResult",
    "RecordPage",
    "RecordList",
    "TimelinePoint",
    "AnalyticsSummary",
    "AnalyticsResponse",
]
