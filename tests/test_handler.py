"""Tests for the Lambda entry point."""

import importlib
import sys

import pytest

from media_ingest.config import Settings
from media_ingest.core.exceptions import ConfigurationError
from media_ingest.core.factories import MediaIngestFactory
from media_ingest.testing.fakes import (
    FakeDynamoTable,
    FakeEventBridgeClient,
    FakeLogger,
    FakeS3Client,
    create_s3_event,
    create_test_image,
)


@pytest.fixture
def handler_module(monkeypatch):
    monkeypatch.setenv("MEDIA_BUCKET", "media")
    monkeypatch.setenv("TABLE_NAME", "gallery")
    monkeypatch.setenv("AWS_REGION", "eu-west-1")
    monkeypatch.delitem(sys.modules, "media_ingest.handler", raising=False)
    return importlib.import_module("media_ingest.handler")


def test_context_built_at_import(handler_module):
    assert handler_module.APP_CONTEXT.settings.media_bucket == "media"
    assert handler_module.APP_CONTEXT.settings.aws_region == "eu-west-1"
    assert [spec.label for spec in handler_module.APP_CONTEXT.variant_specs] == ["xl", "lg", "md"]


def test_import_without_bucket_fails(monkeypatch):
    monkeypatch.setenv("MEDIA_BUCKET", "")
    monkeypatch.delitem(sys.modules, "media_ingest.handler", raising=False)

    with pytest.raises(ConfigurationError):
        importlib.import_module("media_ingest.handler")


def test_handler_summarises_batch(handler_module, monkeypatch, tmp_path):
    s3 = FakeS3Client()
    bucket = s3.create_bucket("media")
    key = "uploads/t1/a1/i1/original/x.jpg"
    bucket.add_object(key, create_test_image(120, 80))
    context = MediaIngestFactory.create_context(
        settings=Settings(_env_file=None, media_bucket="media", table_name="gallery", work_dir=str(tmp_path)),
        s3_client=s3,
        events_client=FakeEventBridgeClient(),
        table=FakeDynamoTable(),
        logger=FakeLogger(),
    )
    monkeypatch.setattr(handler_module, "LISTENER", MediaIngestFactory.create_listener(context))

    response = handler_module.handler(create_s3_event("media", key, "readme.txt"), None)

    assert response["processed"] == 1
    assert response["skipped"] == 1
    assert response["results"][0]["original_key"] == "public/t1/a1/i1/original/x.jpg"
