"""Global test fixtures."""

import json
from typing import Any, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from feedvault.core.config import Settings
from feedvault.core.digest import content_digest
from feedvault.db.database import build_engine, build_session_factory, create_schema
from feedvault.main import create_app
from feedvault.schemas.pipeline import (
    CuratedRecord,
    PostPayload,
    QueueMessage,
    RecordKind,
    SourceDescriptor,
)
from feedvault.services.base import ExternalAPIError
from feedvault.services.container import build_container
from feedvault.services.ingestion import SourceFetcher
from feedvault.services.queue import InMemoryMessageQueue, ReceivedMessage
from feedvault.services.storage import CuratedStore, FileRawStore, build_raw_key

POSTS_SOURCE = SourceDescriptor(
    name="jsonplaceholder",
    endpoint="https://jsonplaceholder.typicode.com/posts",
    record_kind=RecordKind.POSTS,
    item_limit=10,
)
USERS_SOURCE = SourceDescriptor(
    name="randomuser",
    endpoint="https://randomuser.me/api/?results=10",
    record_kind=RecordKind.USERS,
)


def make_posts(count: int) -> list[dict]:
    return [
        {"userId": 1 + i // 10, "id": i + 1, "title": f"title {i + 1}", "body": f"body {i + 1}"}
        for i in range(count)
    ]


def make_users(count: int) -> dict:
    return {
        "results": [
            {
                "gender": "female" if i % 2 else "male",
                "name": {"title": "Mx", "first": f"First{i}", "last": f"Last{i}"},
                "location": {"country": "Norway"},
                "email": f"user{i}@example.com",
                "login": {"uuid": f"uuid-{i}", "username": f"user{i}"},
            }
            for i in range(count)
        ],
        "info": {"seed": "abc", "results": count, "page": 1, "version": "1.4"},
    }


def make_record(
    record_id: str,
    source: str = "jsonplaceholder",
    captured_at: Optional[str] = "2024-02-04T10:30:00.000Z",
) -> CuratedRecord:
    return CuratedRecord(
        id=record_id,
        source=source,
        kind="posts",
        captured_at=captured_at,
        processed_at="2024-02-04T10:31:00.000Z",
        fingerprint="0" * 32,
        raw_location=f"raw/source={source}/date=2024-02-04/x.json",
        payload=PostPayload(title=record_id),
    )


class FakeFetcher(SourceFetcher):
    """Returns canned payloads by source name; exceptions are raised."""

    def __init__(self, payloads: dict[str, Any]):
        self.payloads = payloads
        self.calls: list[str] = []

    async def fetch(self, source: SourceDescriptor) -> Any:
        self.calls.append(source.name)
        payload = self.payloads.get(source.name)
        if isinstance(payload, Exception):
            raise payload
        if payload is None:
            raise ExternalAPIError(source.name, f"{source.endpoint} returned status 404")
        return payload


async def store_capture(
    raw_store: FileRawStore,
    source: SourceDescriptor,
    payload: Any,
    captured_at: str = "2024-02-04T10:30:00.000Z",
    message_id: str = "msg-1",
) -> ReceivedMessage:
    """Write a raw capture and return the message announcing it."""
    content_hash = content_digest(payload)
    key = build_raw_key(source.name, captured_at, content_hash)
    await raw_store.put(key, json.dumps(payload, indent=2).encode("utf-8"), {"source": source.name})
    message = QueueMessage(
        source_name=source.name,
        record_kind=source.record_kind,
        raw_location=key,
        content_hash=content_hash,
        captured_at=captured_at,
        record_count=len(payload) if isinstance(payload, list) else 1,
    )
    return ReceivedMessage(message_id=message_id, body=message.model_dump_json())


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        raw_store_dir=str(tmp_path / "raw"),
        sources=[POSTS_SOURCE, USERS_SOURCE],
        api_key=None,
        expose_error_details=True,
        enable_worker=False,
    )


@pytest_asyncio.fixture
async def session_factory():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    await create_schema(engine)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def curated_store(session_factory) -> CuratedStore:
    return CuratedStore(session_factory)


@pytest.fixture
def raw_store(tmp_path) -> FileRawStore:
    return FileRawStore(tmp_path / "raw")


@pytest.fixture
def queue() -> InMemoryMessageQueue:
    return InMemoryMessageQueue(max_receives=3)


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher({
        POSTS_SOURCE.name: make_posts(12),
        USERS_SOURCE.name: make_users(3),
    })


@pytest.fixture
def container(settings, session_factory, queue, raw_store, fetcher):
    return build_container(settings, session_factory, queue, raw_store=raw_store, fetcher=fetcher)


@pytest.fixture
def app(settings, container):
    return create_app(settings, container=container)


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
