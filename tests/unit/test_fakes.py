"""Tests for fake implementations to ensure they work correctly."""

import io

import pytest
from botocore.exceptions import ClientError
from PIL import Image

from media_ingest.core.exceptions import PublishError
from media_ingest.core.events import build_image_uploaded_event
from media_ingest.testing.fakes import (
    FakeAlbumLookup,
    FakeDynamoTable,
    FakeEventBridgeClient,
    FakeEventPublisher,
    FakeLogger,
    FakeS3Client,
    create_s3_event,
    create_test_image,
)


class TestFakeS3Client:
    """Tests for FakeS3Client to ensure it behaves like boto3."""

    def test_create_bucket(self):
        client = FakeS3Client()

        bucket = client.create_bucket("test-bucket")

        assert bucket.name == "test-bucket"
        assert len(bucket.objects) == 0
        assert client.get_bucket("test-bucket") is bucket

    def test_get_object_success(self):
        client = FakeS3Client()
        client.create_bucket("test-bucket").add_object("test.jpg", b"data")

        response = client.get_object(Bucket="test-bucket", Key="test.jpg")

        assert response["Body"].read() == b"data"
        assert response["ContentType"] == "image/jpeg"
        assert response["ContentLength"] == 4

    def test_get_object_not_found_is_client_error(self):
        client = FakeS3Client()
        client.create_bucket("test-bucket")

        with pytest.raises(ClientError) as excinfo:
            client.get_object(Bucket="test-bucket", Key="nonexistent.jpg")

        assert excinfo.value.response["Error"]["Code"] == "NoSuchKey"

    def test_put_object_accepts_file_objects(self):
        client = FakeS3Client()
        client.create_bucket("test-bucket")

        client.put_object(Bucket="test-bucket", Key="k", Body=io.BytesIO(b"abc"), ContentType="image/png")

        obj = client.get_bucket("test-bucket").get_object("k")
        assert obj.body == b"abc"
        assert obj.content_type == "image/png"

    def test_bucket_not_found(self):
        client = FakeS3Client()

        with pytest.raises(ClientError, match="Bucket.*not found"):
            client.put_object(Bucket="nonexistent", Key="k", Body=b"data")

    def test_fail_on(self):
        client = FakeS3Client()
        client.create_bucket("test-bucket")
        client.fail_on("put_object")

        with pytest.raises(ClientError):
            client.put_object(Bucket="test-bucket", Key="k", Body=b"data")
        client.delete_object(Bucket="test-bucket", Key="k")

        assert [call[0] for call in client.calls] == ["put_object", "delete_object"]

    def test_lifecycle_round_trip(self):
        client = FakeS3Client()
        client.create_bucket("test-bucket")

        with pytest.raises(ClientError):
            client.get_bucket_lifecycle_configuration(Bucket="test-bucket")

        client.put_bucket_lifecycle_configuration(
            Bucket="test-bucket", LifecycleConfiguration={"Rules": [{"ID": "r"}]}
        )
        assert client.get_bucket_lifecycle_configuration(Bucket="test-bucket") == {"Rules": [{"ID": "r"}]}


class TestFakeDynamoTable:
    """Tests for FakeDynamoTable."""

    def test_put_and_get(self):
        table = FakeDynamoTable()
        table.put_item(Item={"PK": "a", "SK": "b", "value": 1})

        assert table.get_item(Key={"PK": "a", "SK": "b"})["Item"]["value"] == 1
        assert "Item" not in table.get_item(Key={"PK": "a", "SK": "c"})

    def test_items_are_copied(self):
        table = FakeDynamoTable()
        item = {"PK": "a", "SK": "b", "tags": ["x"]}
        table.put_item(Item=item)
        item["tags"].append("y")

        assert table.get_item(Key={"PK": "a", "SK": "b"})["Item"]["tags"] == ["x"]


class TestFakeEventClients:
    """Tests for the event bus fakes."""

    def test_event_bridge_reject_next(self):
        client = FakeEventBridgeClient()
        client.reject_next = True

        assert client.put_events(Entries=[{}])["FailedEntryCount"] == 1
        assert client.put_events(Entries=[{}])["FailedEntryCount"] == 0
        assert len(client.entries) == 1

    def test_event_publisher_failure(self):
        publisher = FakeEventPublisher()
        publisher.should_fail = True

        with pytest.raises(PublishError):
            publisher.publish(build_image_uploaded_event("t", "a", "i"))
        assert publisher.events == []


class TestFakeAlbumLookup:
    def test_lookup(self):
        lookup = FakeAlbumLookup()
        lookup.add("t1", "a1")

        assert lookup.get_album("t1", "a1").id == "a1"
        assert lookup.get_album("t1", "a2") is None
        assert lookup.lookups == 2


class TestFakeLogger:
    """Tests for FakeLogger."""

    def test_logging_levels(self):
        logger = FakeLogger()

        logger.debug("Debug message")
        logger.info("Info message", extra_field="value")
        logger.warning("Warning message")
        logger.error("Error message")

        assert len(logger.logs) == 4
        assert logger.get_logs("INFO")[0]["extra_field"] == "value"
        assert len(logger.get_logs("ERROR")) == 1


class TestHelpers:
    """Tests for image and event helpers."""

    def test_create_test_image(self):
        data = create_test_image(64, 32)

        with Image.open(io.BytesIO(data)) as img:
            assert img.size == (64, 32)
            assert img.format == "JPEG"

    def test_create_test_image_with_orientation(self):
        data = create_test_image(64, 32, orientation=8)

        with Image.open(io.BytesIO(data)) as img:
            assert img.getexif().get(0x0112) == 8

    def test_create_s3_event_encodes_keys(self):
        event = create_s3_event("media", "uploads/a b.jpg")

        assert event["Records"][0]["s3"]["object"]["key"] == "uploads/a+b.jpg"
