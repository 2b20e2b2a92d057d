"""
Application Configuration

All settings loaded from environment variables.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings

from feedvault.schemas.pipeline import RecordKind, SourceDescriptor


DEFAULT_SOURCES = [
    SourceDescriptor(
        name="jsonplaceholder",
        endpoint="https://jsonplaceholder.typicode.com/posts",
        record_kind=RecordKind.POSTS,
        item_limit=10,
    ),
    SourceDescriptor(
        name="randomuser",
        endpoint="https://randomuser.me/api/?results=10",
        record_kind=RecordKind.USERS,
    ),
]


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Application
    app_name: str = "FeedVault Backend"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Curated store (SQLAlchemy async URL)
    database_url: str = "sqlite+aiosqlite:///./data/feedvault.db"

    # Raw store (local object lake)
    raw_store_dir: str = "./data/raw"

    # Queue (Redis list, in-memory fallback)
    redis_url: str = "redis://localhost:6379"
    queue_name: str = "feedvault:captures"
    queue_max_receives: int = 5  # Then moved to the dead-letter list

    # Sources (JSON list in env: FEEDVAULT_SOURCES='[{"name": ...}]')
    sources: list[SourceDescriptor] = DEFAULT_SOURCES

    # Concurrency and timeouts
    ingest_concurrency: int = 4
    transform_concurrency: int = 8
    fetch_timeout_seconds: float = 10.0
    storage_timeout_seconds: float = 5.0
    message_timeout_seconds: float = 30.0

    # Pagination
    default_page_size: int = 20
    max_page_size: int = 100

    # API boundary
    api_key: Optional[str] = None  # Shared secret for X-Api-Key, disabled when unset
    allowed_origins: list[str] = ["*"]
    expose_error_details: bool = False  # Echo underlying errors; trusted/internal deployments only

    # Background worker
    enable_worker: bool = False
    ingest_interval_seconds: float = 3600.0
    poll_interval_seconds: float = 5.0
    transform_batch_size: int = 10
    partial_batch_ack: bool = True

    class Config:
        env_prefix = "FEEDVAULT_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
