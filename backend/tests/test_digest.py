"""Tests for content digests, record ids and timestamps."""

from datetime import datetime, timezone

from feedvault.core.digest import canonical_json, content_digest, record_id
from feedvault.core.timeutil import date_part, to_iso
from feedvault.services.storage import build_raw_key


class TestContentDigest:
    def test_canonical_json_is_compact(self):
        assert canonical_json({"a": 1, "b": [1, 2]}) == '{"a":1,"b":[1,2]}'

    def test_digest_is_md5_hex(self):
        digest = content_digest([{"id": 1}])
        assert len(digest) == 32
        assert all(c in "0123456789abcdef" for c in digest)

    def test_digest_is_deterministic(self):
        payload = [{"id": 1, "title": "héllo"}]
        assert content_digest(payload) == content_digest([{"id": 1, "title": "héllo"}])

    def test_digest_changes_with_content(self):
        assert content_digest([{"id": 1}]) != content_digest([{"id": 2}])


class TestRecordId:
    def test_format(self):
        assert record_id("jsonplaceholder", 1, "abcdef0123456789") == "jsonplaceholder-1-abcdef01"

    def test_same_inputs_same_id(self):
        digest = content_digest([{"id": 7}])
        assert record_id("src", 7, digest) == record_id("src", 7, digest)

    def test_different_capture_different_id(self):
        first = record_id("src", 7, content_digest([{"id": 7, "v": 1}]))
        second = record_id("src", 7, content_digest([{"id": 7, "v": 2}]))
        assert first != second


class TestTimestamps:
    def test_to_iso_millisecond_utc(self):
        dt = datetime(2024, 2, 4, 10, 30, 0, 123456, tzinfo=timezone.utc)
        assert to_iso(dt) == "2024-02-04T10:30:00.123Z"

    def test_naive_datetime_treated_as_utc(self):
        assert to_iso(datetime(2024, 2, 4, 10, 30)) == "2024-02-04T10:30:00.000Z"

    def test_date_part(self):
        assert date_part("2024-02-04T10:30:00.000Z") == "2024-02-04"
        assert date_part(None) is None
        assert date_part("") is None


class TestRawKey:
    def test_key_layout(self):
        key = build_raw_key("jsonplaceholder", "2024-02-04T10:30:00.000Z", "abc123")
        assert key == "raw/source=jsonplaceholder/date=2024-02-04/2024-02-04T10:30:00.000Z-abc123.json"
