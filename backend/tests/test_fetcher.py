"""Tests for the HTTP source fetcher against a local aiohttp server."""

import asyncio

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from feedvault.schemas.pipeline import OutcomeStatus, SourceDescriptor
from feedvault.services.base import ExternalAPIError
from feedvault.services.ingestion import HttpSourceFetcher, IngestionService

from conftest import make_posts


async def _posts(request):
    return web.json_response(make_posts(3))


async def _broken(request):
    return web.json_response({"error": "upstream down"}, status=500)


async def _html(request):
    return web.Response(text="<html>maintenance</html>", content_type="text/html")


async def _slow(request):
    await asyncio.sleep(0.5)
    return web.json_response([])


@pytest_asyncio.fixture
async def feed_server():
    app = web.Application()
    app.router.add_get("/posts", _posts)
    app.router.add_get("/broken", _broken)
    app.router.add_get("/html", _html)
    app.router.add_get("/slow", _slow)
    server = TestServer(app)
    await server.start_server()
    yield server
    await server.close()


@pytest_asyncio.fixture
async def http_fetcher():
    fetcher = HttpSourceFetcher(timeout=0.1)
    yield fetcher
    await fetcher.close()


def _source(server: TestServer, path: str) -> SourceDescriptor:
    return SourceDescriptor(name="feed", endpoint=str(server.make_url(path)), record_kind="posts")


class TestHttpSourceFetcher:
    @pytest.mark.asyncio
    async def test_returns_parsed_json(self, feed_server, http_fetcher):
        payload = await http_fetcher.fetch(_source(feed_server, "/posts"))
        assert payload == make_posts(3)

    @pytest.mark.asyncio
    async def test_error_status(self, feed_server, http_fetcher):
        with pytest.raises(ExternalAPIError, match="returned status 500") as exc_info:
            await http_fetcher.fetch(_source(feed_server, "/broken"))
        assert exc_info.value.details == {"status": 500}
        assert exc_info.value.service_name == "feed"

    @pytest.mark.asyncio
    async def test_body_not_json(self, feed_server, http_fetcher):
        with pytest.raises(ExternalAPIError, match="Invalid JSON"):
            await http_fetcher.fetch(_source(feed_server, "/html"))

    @pytest.mark.asyncio
    async def test_timeout(self, feed_server, http_fetcher):
        with pytest.raises(ExternalAPIError, match="Timed out"):
            await http_fetcher.fetch(_source(feed_server, "/slow"))

    @pytest.mark.asyncio
    async def test_connection_refused(self, http_fetcher):
        server = TestServer(web.Application())
        await server.start_server()
        source = _source(server, "/posts")
        await server.close()

        with pytest.raises(ExternalAPIError, match="failed"):
            await http_fetcher.fetch(source)

    @pytest.mark.asyncio
    async def test_session_reopened_after_close(self, feed_server, http_fetcher):
        await http_fetcher.fetch(_source(feed_server, "/posts"))
        await http_fetcher.close()

        assert await http_fetcher.fetch(_source(feed_server, "/posts")) == make_posts(3)


class TestIngestionOverHttp:
    @pytest.mark.asyncio
    async def test_failing_endpoint_is_a_source_error(self, feed_server, http_fetcher, raw_store, queue):
        good = _source(feed_server, "/posts")
        bad = SourceDescriptor(name="down", endpoint=str(feed_server.make_url("/broken")), record_kind="posts")
        ingestion = IngestionService([good, bad], http_fetcher, raw_store, queue)

        result = await ingestion.run()

        assert [r.status for r in result.results] == [OutcomeStatus.SUCCESS, OutcomeStatus.ERROR]
        assert "returned status 500" in result.results[1].error
        assert (await queue.stats())["pending"] == 1
