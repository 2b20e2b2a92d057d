"""Tests for the record query service."""

import pytest

from feedvault.services.base import InvalidCursorError, RecordNotFoundError
from feedvault.services.records import RecordQueryService, decode_cursor, encode_cursor

from conftest import make_record


@pytest.fixture
def records(curated_store):
    return RecordQueryService(curated_store, default_page_size=20, max_page_size=100)


async def _seed(curated_store, source, count):
    for i in range(count):
        await curated_store.put_if_absent(make_record(f"{source}-{i:03d}-00000000", source=source))


class TestCoerceLimit:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (None, 20),
            ("abc", 20),
            ("0", 20),
            ("-5", 20),
            ("5", 5),
            (7, 7),
            ("1000", 100),
        ],
    )
    def test_coerce(self, records, raw, expected):
        assert records.coerce_limit(raw) == expected


class TestListRecords:
    @pytest.mark.asyncio
    async def test_source_filter(self, records, curated_store):
        await _seed(curated_store, "a", 8)
        await _seed(curated_store, "b", 2)

        result = await records.list_records(source="b")

        assert result.count == 2
        assert {r.source for r in result.records} == {"b"}
        assert result.cursor is None

    @pytest.mark.asyncio
    async def test_unfiltered_pages_with_cursor(self, records, curated_store):
        await _seed(curated_store, "a", 5)

        first = await records.list_records(limit="2")
        second = await records.list_records(limit="2", cursor=first.cursor)
        third = await records.list_records(limit="2", cursor=second.cursor)

        ids = [r.id for page in (first, second, third) for r in page.records]
        assert len(ids) == 5
        assert len(set(ids)) == 5
        assert third.cursor is None

    @pytest.mark.asyncio
    async def test_filtered_pages_with_cursor(self, records, curated_store):
        await _seed(curated_store, "a", 3)
        await _seed(curated_store, "b", 3)

        first = await records.list_records(source="a", limit=2)
        second = await records.list_records(source="a", limit=2, cursor=first.cursor)

        assert decode_cursor(first.cursor)["source"] == "a"
        assert [r.id for r in second.records] == ["a-002-00000000"]
        assert second.cursor is None

    @pytest.mark.asyncio
    async def test_cursor_from_other_source_rejected(self, records, curated_store):
        cursor = encode_cursor({"source": "a", "id": "a-000-00000000"})

        with pytest.raises(InvalidCursorError):
            await records.list_records(source="b", cursor=cursor)

    @pytest.mark.asyncio
    async def test_invalid_cursor_rejected(self, records):
        with pytest.raises(InvalidCursorError):
            await records.list_records(cursor="%%%")

    @pytest.mark.asyncio
    async def test_empty_store(self, records):
        result = await records.list_records()
        assert result.records == []
        assert result.count == 0
        assert result.cursor is None


class TestGetRecord:
    @pytest.mark.asyncio
    async def test_found(self, records, curated_store):
        await curated_store.put_if_absent(make_record("a-1-00000000"))
        record = await records.get_record("a-1-00000000")
        assert record.id == "a-1-00000000"

    @pytest.mark.asyncio
    async def test_not_found(self, records):
        with pytest.raises(RecordNotFoundError) as exc_info:
            await records.get_record("unknown-id")
        assert exc_info.value.record_id == "unknown-id"


class TestAnalytics:
    @pytest.mark.asyncio
    async def test_traverses_whole_store(self, curated_store):
        await _seed(curated_store, "a", 4)
        await _seed(curated_store, "b", 3)
        service = RecordQueryService(curated_store, scan_page_size=2)

        result = await service.analytics()

        assert result.summary.total_records == 7
        assert result.by_source == {"a": 4, "b": 3}
