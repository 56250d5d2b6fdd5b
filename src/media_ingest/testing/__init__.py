"""Testing utilities and fakes for the media ingestion pipeline."""

from .fakes import (
    FakeAlbumLookup,
    FakeDynamoTable,
    FakeEventBridgeClient,
    FakeEventPublisher,
    FakeLogger,
    FakeS3Client,
    S3Bucket,
    S3Object,
    create_s3_event,
    create_test_image,
)

__all__ = [
    "FakeAlbumLookup",
    "FakeDynamoTable",
    "FakeEventBridgeClient",
    "FakeEventPublisher",
    "FakeLogger",
    "FakeS3Client",
    "S3Bucket",
    "S3Object",
    "create_s3_event",
    "create_test_image",
]
