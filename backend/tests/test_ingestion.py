"""Tests for the ingestion service: capture, raw persistence, notification."""

import json

import pytest

from feedvault.core.digest import content_digest
from feedvault.schemas.pipeline import OutcomeStatus, QueueMessage, SourceDescriptor
from feedvault.services.base import ExternalAPIError, StorageError
from feedvault.services.ingestion import IngestionService, count_items
from feedvault.services.queue import InMemoryMessageQueue

from conftest import POSTS_SOURCE, USERS_SOURCE, FakeFetcher, make_posts, make_users


class BrokenQueue(InMemoryMessageQueue):
    async def send(self, message, attributes=None):
        raise StorageError("MessageQueue", "Failed to send message: connection refused")


def _service(fetcher, raw_store, queue, sources=(POSTS_SOURCE, USERS_SOURCE)):
    return IngestionService(list(sources), fetcher, raw_store, queue)


class TestCountItems:
    def test_list(self):
        assert count_items([1, 2, 3]) == 3

    def test_results_wrapper(self):
        assert count_items({"results": [1, 2]}) == 2

    def test_empty_results(self):
        assert count_items({"results": []}) == 0

    def test_other_object(self):
        assert count_items({"data": [1, 2]}) == 1


class TestIngestionRun:
    @pytest.mark.asyncio
    async def test_every_source_captured(self, fetcher, raw_store, queue):
        result = await _service(fetcher, raw_store, queue).run()

        assert result.message == "Ingestion completed"
        assert [r.status for r in result.results] == [OutcomeStatus.SUCCESS, OutcomeStatus.SUCCESS]
        assert result.results[0].record_count == 12
        assert result.results[1].record_count == 3
        assert (await queue.stats())["pending"] == 2

    @pytest.mark.asyncio
    async def test_raw_capture_is_unmodified(self, fetcher, raw_store, queue):
        result = await _service(fetcher, raw_store, queue, sources=[POSTS_SOURCE]).run()
        location = result.results[0].raw_location

        assert location.startswith("raw/source=jsonplaceholder/date=")
        assert json.loads(await raw_store.get(location)) == make_posts(12)

    @pytest.mark.asyncio
    async def test_raw_metadata(self, fetcher, raw_store, queue):
        result = await _service(fetcher, raw_store, queue, sources=[POSTS_SOURCE]).run()

        metadata = await raw_store.get_metadata(result.results[0].raw_location)

        assert metadata["source"] == "jsonplaceholder"
        assert metadata["type"] == "posts"
        assert metadata["hash"] == content_digest(make_posts(12))

    @pytest.mark.asyncio
    async def test_message_references_capture(self, fetcher, raw_store, queue):
        result = await _service(fetcher, raw_store, queue, sources=[USERS_SOURCE]).run()

        [received] = await queue.receive()
        message = QueueMessage.model_validate_json(received.body)

        assert received.attributes == {"source": "randomuser"}
        assert message.raw_location == result.results[0].raw_location
        assert message.content_hash == content_digest(make_users(3))
        assert message.record_kind == "users"
        assert message.record_count == 3

    @pytest.mark.asyncio
    async def test_failed_fetch_does_not_stop_other_sources(self, raw_store, queue):
        fetcher = FakeFetcher({
            POSTS_SOURCE.name: ExternalAPIError(POSTS_SOURCE.name, "Request timed out"),
            USERS_SOURCE.name: make_users(2),
        })

        result = await _service(fetcher, raw_store, queue).run()

        posts, users = result.results
        assert posts.status == OutcomeStatus.ERROR
        assert posts.error == "Request timed out"
        assert posts.raw_location is None
        assert users.status == OutcomeStatus.SUCCESS
        assert len(result.failed) == 1
        assert (await queue.stats())["pending"] == 1

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_isolated(self, raw_store, queue):
        fetcher = FakeFetcher({POSTS_SOURCE.name: RuntimeError("boom"), USERS_SOURCE.name: make_users(1)})

        result = await _service(fetcher, raw_store, queue).run()

        assert result.results[0].error == "boom"
        assert result.results[1].status == OutcomeStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_queue_failure_reported_per_source(self, fetcher, raw_store):
        result = await _service(fetcher, raw_store, BrokenQueue(), sources=[POSTS_SOURCE]).run()

        [outcome] = result.results
        assert outcome.status == OutcomeStatus.ERROR
        assert "Failed to send message" in outcome.error

    @pytest.mark.asyncio
    async def test_no_sources(self, fetcher, raw_store, queue):
        result = await _service(fetcher, raw_store, queue, sources=[]).run()
        assert result.results == []

    @pytest.mark.asyncio
    async def test_execute_with_explicit_sources(self, fetcher, raw_store, queue):
        extra = SourceDescriptor(name="randomuser", endpoint="https://example.invalid", record_kind="users")

        result = await _service(fetcher, raw_store, queue).execute([extra])

        assert [r.source for r in result.results] == ["randomuser"]
        assert fetcher.calls == ["randomuser"]

    @pytest.mark.asyncio
    async def test_health_check(self, fetcher, raw_store, queue):
        assert await _service(fetcher, raw_store, queue).health_check() is True
