"""Tests for fake implementations to ensure they work correctly."""

import json

import pytest
import requests

from images_importer.core.sniffing import sniff_bytes
from images_importer.core.models import ImportRecord, MediaType
from images_importer.testing.fakes import (
    FakeHttpSession,
    FakeLogger,
    FakeRecordStore,
    build_descriptor,
    create_test_image,
    setup_test_http_environment,
)


class TestFakeRecordStore:
    """Tests for FakeRecordStore to ensure it behaves correctly."""

    def test_insert_then_exists(self):
        store = FakeRecordStore()

        record_id = store.insert(ImportRecord(resource="/uploads/a.png"))

        assert store.records[record_id].resource == "/uploads/a.png"
        assert store.exists("/uploads/a.png") is True
        assert store.exists("/uploads/b.png") is False
        assert store.insert_calls == 1
        assert store.exists_calls == 2

    def test_add_existing_does_not_count(self):
        store = FakeRecordStore()

        store.add_existing("/uploads/a.png")

        assert store.resources() == ["/uploads/a.png"]
        assert store.insert_calls == 0

    def test_failure_mode(self):
        store = FakeRecordStore()
        store.set_failure_mode(True, "down")

        with pytest.raises(ConnectionError, match="down"):
            store.exists("/uploads/a.png")

    def test_fail_inserts_only(self):
        store = FakeRecordStore()
        store.fail_inserts = True

        assert store.exists("/uploads/a.png") is False
        with pytest.raises(ConnectionError):
            store.insert(ImportRecord(resource="/uploads/a.png"))


class TestFakeHttpSession:
    """Tests for FakeHttpSession."""

    def test_serves_registered_body(self):
        session = FakeHttpSession()
        session.add_file("http://x/a.jpg", b"abcdef")

        response = session.get("http://x/a.jpg", stream=True, timeout=5)
        response.raise_for_status()

        assert b"".join(response.iter_content(chunk_size=4)) == b"abcdef"
        assert session.requests == [{"url": "http://x/a.jpg", "stream": True, "timeout": 5}]

    def test_unknown_url_is_404(self):
        session = FakeHttpSession()

        response = session.get("http://x/missing.jpg")

        with pytest.raises(requests.exceptions.HTTPError, match="404"):
            response.raise_for_status()

    def test_registered_error_is_raised(self):
        session = FakeHttpSession()
        session.add_error("http://x/a.jpg", requests.exceptions.ConnectionError("nope"))

        with pytest.raises(requests.exceptions.ConnectionError):
            session.get("http://x/a.jpg")
        assert session.active == 0

    def test_active_count_tracks_open_responses(self):
        session = FakeHttpSession()
        session.add_file("http://x/a.jpg", b"a")

        first = session.get("http://x/a.jpg")
        second = session.get("http://x/a.jpg")
        assert session.active == 2

        first.close()
        first.close()
        second.close()

        assert session.active == 0
        assert session.max_active == 2

    def test_stream_error_after_first_chunk(self):
        session = FakeHttpSession()
        session.add_file(
            "http://x/a.jpg",
            b"abcdef",
            stream_error=requests.exceptions.ChunkedEncodingError("cut"),
        )
        chunks = session.get("http://x/a.jpg").iter_content(chunk_size=2)

        assert next(chunks) == b"ab"
        with pytest.raises(requests.exceptions.ChunkedEncodingError):
            next(chunks)


class TestFakeLogger:
    """Tests for FakeLogger."""

    def test_filters_by_level(self):
        logger = FakeLogger()

        logger.info("one")
        logger.error("two", extra_field=1)

        assert [log["message"] for log in logger.get_logs()] == ["one", "two"]
        assert logger.get_logs("ERROR")[0]["extra_field"] == 1


class TestHelpers:
    """Tests for the test data helpers."""

    @pytest.mark.parametrize(
        "image_format,expected",
        [("JPEG", MediaType.JPEG), ("PNG", MediaType.PNG), ("GIF", MediaType.GIF)],
    )
    def test_create_test_image_is_sniffable(self, image_format, expected):
        assert sniff_bytes(create_test_image(8, 8, image_format)) is expected

    def test_build_descriptor(self):
        raw = build_descriptor([{"image_standard": "http://x/a.png"}])

        assert json.loads(raw) == {
            "status": "success",
            "data": {"items": [{"image_standard": "http://x/a.png"}]},
        }

    def test_environment_descriptor(self):
        env = setup_test_http_environment()

        document = json.loads(env.descriptor)

        assert len(document["data"]["items"]) == 6
        assert "http://images.test/photo1.jpg" in env.session.files
