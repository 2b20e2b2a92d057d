"""
CONTRACT: Capture → Queue → Curated Record

Input:  SourceDescriptor (static configuration)
Output: RawCapture, QueueMessage, CuratedRecord

These models are the handoff shapes between the Ingestor, the Transformer and
the Query/Analytics Service.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

from feedvault.services.base import BatchProcessingError


# =============================================================================
# ENUMS
# =============================================================================


class RecordKind(str, Enum):
    POSTS = "posts"
    USERS = "users"


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


# =============================================================================
# SOURCES AND CAPTURES
# =============================================================================


class SourceDescriptor(BaseModel):
    """One external feed. Immutable for the process lifetime."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    endpoint: str
    record_kind: str = Field(..., description="Mapping rules to apply, e.g. 'posts'")
    item_limit: Optional[int] = Field(
        default=None,
        ge=1,
        description="Keep at most this many items per capture",
    )


class RawCapture(BaseModel):
    """An unmodified snapshot of a source payload, stored once per fetch."""

    model_config = ConfigDict(frozen=True)

    source_name: str
    storage_key: str
    content_hash: str
    record_count: int = Field(..., ge=0)
    captured_at: str


class QueueMessage(BaseModel):
    """
    Handoff from the Ingestor to the Transformer.
    Delivered at-least-once; consumers must be replay-safe.
    """

    source_name: str
    record_kind: str
    raw_location: str
    content_hash: str
    captured_at: str
    record_count: int = Field(..., ge=0)


# =============================================================================
# CURATED RECORDS (envelope + kind-specific payload)
# =============================================================================


class PostPayload(BaseModel):
    """Post-like item (title/body authored by a user)."""

    kind: Literal["posts"] = "posts"
    title: str = ""
    body: str = ""
    user_id: str = ""


class UserPayload(BaseModel):
    """User-like profile."""

    kind: Literal["users"] = "users"
    name: str
    email: Optional[str] = None
    country: Optional[str] = None
    gender: Optional[str] = None


RecordPayload = Annotated[Union[PostPayload, UserPayload], Field(discriminator="kind")]


class CuratedRecord(BaseModel):
    """
    Normalized record.

    `id` is derived from (source, item id, truncated capture hash) and is the
    dedup key. `fingerprint` digests the single source item and is kept for
    auditing only.
    """

    id: str
    source: str
    kind: str
    captured_at: Optional[str] = None
    processed_at: str
    fingerprint: str
    raw_location: str
    payload: RecordPayload


# =============================================================================
# RESULTS
# =============================================================================


class SourceOutcome(BaseModel):
    """Per-source result of an ingestion run."""

    source: str
    status: OutcomeStatus
    raw_location: Optional[str] = None
    record_count: Optional[int] = None
    error: Optional[str] = None


class IngestionRunResult(BaseModel):
    """Summary of one ingestion run."""

    message: str = "Ingestion completed"
    results: list[SourceOutcome]
    timestamp: str

    @property
    def failed(self) -> list[SourceOutcome]:
        return [r for r in self.results if r.status == OutcomeStatus.ERROR]


class MessageResult(BaseModel):
    """Per-message result of a transform batch."""

    message_id: str
    status: OutcomeStatus
    source: Optional[str] = None
    processed_count: int = 0
    written_count: int = 0
    existing_count: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS


class BatchResult(BaseModel):
    """Aggregated result of a transform batch."""

    message: str = "Processing completed"
    results: list[MessageResult]

    @property
    def failed_message_ids(self) -> list[str]:
        return [r.message_id for r in self.results if not r.ok]

    @property
    def succeeded(self) -> bool:
        return not self.failed_message_ids

    def raise_for_failures(self) -> None:
        """Raise if any message failed, signalling whole-batch redelivery."""
        if self.succeeded:
            return
        raise BatchProcessingError(
            "TransformService",
            f"{len(self.failed_message_ids)} of {len(self.results)} messages failed",
            details={"failed_message_ids": self.failed_message_ids},
        )


class RecordPage(BaseModel):
    """One page of curated records."""

    records: list[CuratedRecord]
    next_key: Optional[dict] = None


class RecordList(BaseModel):
    """Response of a listing: one page plus the cursor of the next one."""

    records: list[CuratedRecord]
    count: int
    cursor: Optional[str] = None


class TimelinePoint(BaseModel):
    date: str
    count: int


class AnalyticsSummary(BaseModel):
    total_records: int
    total_sources: int
    oldest_record: Optional[str] = None
    newest_record: Optional[str] = None


class AnalyticsResponse(BaseModel):
    summary: AnalyticsSummary
    by_source: dict[str, int]
    by_date: dict[str, int]
    timeline: list[TimelinePoint]
