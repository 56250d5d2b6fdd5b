"""Unit tests for the S3, EventBridge and DynamoDB adapters."""

import json
from datetime import datetime, timezone
from unittest import mock

import pytest
from botocore.exceptions import EndpointConnectionError

from media_ingest.core.events import (
    EventBridgePublisher,
    build_image_processed_event,
    build_image_uploaded_event,
)
from media_ingest.core.exceptions import PublishError, S3Error, S3ObjectNotFoundError
from media_ingest.core.models import ImageRecord, Variant
from media_ingest.core.repositories import DynamoAlbumLookup, DynamoImageMetadataStore
from media_ingest.core.storage import S3ObjectStore, S3PresignedPostProvider
from media_ingest.testing.fakes import (
    FakeDynamoTable,
    FakeEventBridgeClient,
    FakeLogger,
    FakeS3Client,
)


@pytest.fixture
def fake_s3():
    client = FakeS3Client()
    client.create_bucket("media")
    return client


class TestS3ObjectStore:
    """Tests for S3ObjectStore."""

    def test_download_writes_file(self, fake_s3, tmp_path):
        fake_s3.get_bucket("media").add_object("k", b"abc", "image/png")
        store = S3ObjectStore(fake_s3, "media", FakeLogger())

        downloaded = store.download("k", str(tmp_path / "k"))

        assert (tmp_path / "k").read_bytes() == b"abc"
        assert downloaded.content_type == "image/png"
        assert downloaded.size_bytes == 3

    def test_download_missing_key(self, fake_s3, tmp_path):
        store = S3ObjectStore(fake_s3, "media", FakeLogger())

        with pytest.raises(S3ObjectNotFoundError):
            store.download("missing", str(tmp_path / "m"))
        assert len(fake_s3.calls_for("get_object")) == 1

    def test_upload_streams_file(self, fake_s3, tmp_path):
        path = tmp_path / "v.jpg"
        path.write_bytes(b"variant")
        store = S3ObjectStore(fake_s3, "media", FakeLogger())

        store.upload(str(path), "public/v.jpg", "image/jpeg")

        obj = fake_s3.get_bucket("media").get_object("public/v.jpg")
        assert obj.body == b"variant"
        assert obj.content_type == "image/jpeg"

    def test_upload_defaults_content_type(self, fake_s3, tmp_path):
        path = tmp_path / "v.bin"
        path.write_bytes(b"x")
        store = S3ObjectStore(fake_s3, "media", FakeLogger())

        store.upload(str(path), "public/v.bin", None)

        obj = fake_s3.get_bucket("media").get_object("public/v.bin")
        assert obj.content_type == "application/octet-stream"

    @mock.patch("time.sleep", return_value=None)
    def test_upload_retries_throttling(self, mock_sleep, fake_s3, tmp_path):
        path = tmp_path / "v.jpg"
        path.write_bytes(b"x")
        fake_s3.fail_on("put_object")
        store = S3ObjectStore(fake_s3, "media", FakeLogger())

        with pytest.raises(S3Error):
            store.upload(str(path), "public/v.jpg", "image/jpeg")
        assert len(fake_s3.calls_for("put_object")) == 3

    def test_delete_is_idempotent(self, fake_s3):
        fake_s3.get_bucket("media").add_object("k", b"abc")
        store = S3ObjectStore(fake_s3, "media", FakeLogger())

        store.delete("k")
        store.delete("k")

        assert fake_s3.get_bucket("media").get_object("k") is None
        assert len(fake_s3.calls_for("delete_object")) == 2


class TestS3PresignedPostProvider:
    """Tests for S3PresignedPostProvider."""

    def test_policy_conditions(self, fake_s3):
        issued_at = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
        provider = S3PresignedPostProvider(
            fake_s3,
            "media",
            default_expires_seconds=300,
            default_max_size_bytes=1000,
            clock=lambda: issued_at,
        )

        credential = provider.create_presigned_post("uploads/t/a/i/original/x.jpg", "image/jpeg")

        _, bucket, key, conditions, expires = fake_s3.calls_for("generate_presigned_post")[0]
        assert bucket == "media"
        assert key == "uploads/t/a/i/original/x.jpg"
        assert ["starts-with", "$Content-Type", "image"] in conditions
        assert ["content-length-range", 1, 1000] in conditions
        assert expires == 300
        assert credential.key == key
        assert credential.url == "https://media.s3.amazonaws.com/"
        assert credential.fields["Content-Type"] == "image/jpeg"
        assert credential.expires_at_iso == "2024-05-01T12:05:00.000Z"

    def test_overrides(self, fake_s3):
        provider = S3PresignedPostProvider(fake_s3, "media")

        provider.create_presigned_post("k", "image/png", expires_seconds=60, max_size_bytes=10)

        _, _, _, conditions, expires = fake_s3.calls_for("generate_presigned_post")[0]
        assert expires == 60
        assert ["content-length-range", 1, 10] in conditions


class TestEventBridgePublisher:
    """Tests for EventBridgePublisher."""

    def test_put_events_entry(self):
        client = FakeEventBridgeClient()
        publisher = EventBridgePublisher(client, "bus", "media-ingest.processor", FakeLogger())
        event = build_image_uploaded_event("t1", "a1", "i1", occurred_at="2024-05-01T12:00:00.000Z")

        publisher.publish(event)

        entry = client.entries[0]
        assert entry["EventBusName"] == "bus"
        assert entry["Source"] == "media-ingest.processor"
        assert entry["DetailType"] == "ImageUploaded"
        assert entry["Time"] == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        assert json.loads(entry["Detail"])["payload"] == {"albumId": "a1", "imageId": "i1"}

    def test_rejected_entry_raises(self):
        client = FakeEventBridgeClient()
        client.reject_next = True
        publisher = EventBridgePublisher(client, "bus", "src", FakeLogger())

        with pytest.raises(PublishError, match="InternalFailure"):
            publisher.publish(build_image_uploaded_event("t1", "a1", "i1"))

    def test_transport_error_raises(self):
        client = mock.Mock()
        client.put_events.side_effect = EndpointConnectionError(endpoint_url="https://events")
        publisher = EventBridgePublisher(client, "bus", "src", FakeLogger())

        with pytest.raises(PublishError):
            publisher.publish(build_image_uploaded_event("t1", "a1", "i1"))

    def test_processed_events_get_fresh_ids(self):
        first = build_image_processed_event("t1", "a1", "i1", "public/k", [])
        second = build_image_processed_event("t1", "a1", "i1", "public/k", [])

        assert first.id != second.id
        assert first.type == "ImageProcessed"


def _record(**overrides):
    data = dict(
        id="i1",
        tenant_id="t1",
        album_id="a1",
        filename="x.jpg",
        content_type="image/jpeg",
        size_bytes=10,
        width=4,
        height=3,
        created_at="2024-05-01T12:00:00.000Z",
    )
    data.update(overrides)
    return ImageRecord(**data)


class TestDynamoRepositories:
    """Tests for the single-table album lookup and image store."""

    def test_album_lookup(self):
        table = FakeDynamoTable()
        table.add_album("t1", "a1", name="Holiday")
        lookup = DynamoAlbumLookup(table)

        album = lookup.get_album("t1", "a1")

        assert album.id == "a1"
        assert album.tenant_id == "t1"
        assert album.name == "Holiday"
        assert lookup.get_album("t2", "a1") is None

    def test_put_writes_keys_and_indexes(self):
        table = FakeDynamoTable()
        store = DynamoImageMetadataStore(table)

        store.put(_record())

        item = table.items[("TENANT#t1", "IMAGE#i1")]
        assert item["GSI1PK"] == "ALBUM#a1"
        assert item["GSI1SK"] == "IMAGE#i1"
        assert item["contentType"] == "image/jpeg"
        assert "variants" not in item
        assert "originalKey" not in item

    def test_put_then_get(self):
        table = FakeDynamoTable()
        store = DynamoImageMetadataStore(table)
        variant = Variant(label="md", key="public/t1/a1/i1/md/x.jpg", width=4, height=3, size_bytes=5)
        record = _record(
            original_key="public/t1/a1/i1/original/x.jpg",
            variants=[variant],
            processed_at="2024-05-01T12:00:01.000Z",
        )

        store.put(record)

        assert store.get("t1", "i1") == record
        assert store.get("t1", "other") is None

    def test_put_overwrites(self):
        table = FakeDynamoTable()
        store = DynamoImageMetadataStore(table)

        store.put(_record(width=4))
        store.put(_record(width=8))

        assert len(table.items) == 1
        assert store.get("t1", "i1").width == 8
