"""
Database module for FeedVault.

Provides the curated store's SQLAlchemy engine, sessions and models.
"""

from feedvault.db.database import (
    build_engine,
    build_session_factory,
    close_db,
    create_schema,
    init_db,
)
from feedvault.db.models import Base, CuratedRecordRow

__all__ = [
    "build_engine",
    "build_session_factory",
    "close_db",
    "create_schema",
    "init_db",
    "Base",
    "CuratedRecordRow",
]
