"""
SQLAlchemy models for the FeedVault curated store.

One table, keyed by the deterministic record id, with a secondary index on
source for filtered listing.
"""

from sqlalchemy import Column, String, Index, JSON
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class CuratedRecordRow(Base):
    """
    Normalized record written by the Transformer.
    Insert-only: rows are never updated or deleted by the pipeline.
    """
    __tablename__ = "curated_records"

    id = Column(String(255), primary_key=True)
    source = Column(String(100), nullable=False)
    kind = Column(String(50), nullable=False)

    # ISO-8601 UTC strings (sort lexically)
    captured_at = Column(String(32), nullable=True)
    processed_at = Column(String(32), nullable=False)

    fingerprint = Column(String(64), nullable=False)
    raw_location = Column(String(512), nullable=False)

    # Kind-specific fields ({"kind": "posts", "title": ...})
    payload = Column(JSON, nullable=False)

    # Secondary index: lookup by source, ordered by id for cursor resume
    __table_args__ = (
        Index("ix_curated_records_source_id", "source", "id"),
    )
