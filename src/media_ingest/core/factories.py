"""Factory classes for building the dependency context and services."""

from dataclasses import dataclass, field
from typing import Any, List, Optional

import boto3
import pydantic

from ..config import Settings
from .events import EventBridgePublisher
from .exceptions import ConfigurationError
from .listener import StorageEventListener
from .models import VariantSpec
from .observability import MetricsCollector, StructuredLogger
from .protocols import (
    AlbumLookup,
    EventPublisher,
    ImageMetadataStore,
    LoggerProtocol,
    S3ClientProtocol,
    UploadUrlProvider,
)
from .repositories import DynamoAlbumLookup, DynamoImageMetadataStore
from .retention import RetentionPolicy
from .services import UploadCompletionNotifier, UploadUrlIssuer
from .storage import S3ObjectStore, S3PresignedPostProvider
from .worker import MediaIngestWorker


@dataclass
class AppContext:
    """
    Constructed dependencies shared by every request and record.

    Built once at process start and passed by reference; the clients it holds
    are safe to reuse across invocations.
    """

    settings: Settings
    s3_client: S3ClientProtocol
    object_store: S3ObjectStore
    upload_provider: UploadUrlProvider
    album_lookup: AlbumLookup
    metadata_store: ImageMetadataStore
    publisher: EventPublisher
    logger: LoggerProtocol
    variant_specs: List[VariantSpec] = field(default_factory=list)
    metrics_collector: Optional[MetricsCollector] = None


class MediaIngestFactory:
    """Factory for the pipeline's context and the services built on it."""

    @staticmethod
    def create_context(
        settings: Optional[Settings] = None,
        s3_client: Optional[S3ClientProtocol] = None,
        events_client: Any = None,
        table: Any = None,
        album_lookup: Optional[AlbumLookup] = None,
        metadata_store: Optional[ImageMetadataStore] = None,
        publisher: Optional[EventPublisher] = None,
        logger: Optional[LoggerProtocol] = None,
        metrics_collector: Optional[MetricsCollector] = None,
    ) -> AppContext:
        """Create the context, building AWS clients for anything not supplied."""
        settings = settings or Settings()
        if not settings.media_bucket:
            raise ConfigurationError("MEDIA_BUCKET must be set")

        if logger is None:
            logger = StructuredLogger("media-ingest")

        session = boto3.Session(region_name=settings.aws_region)

        if s3_client is None:
            s3_client = session.client("s3")

        if album_lookup is None or metadata_store is None:
            if table is None:
                if not settings.table_name:
                    raise ConfigurationError("TABLE_NAME must be set")
                table = session.resource("dynamodb").Table(settings.table_name)
            album_lookup = album_lookup or DynamoAlbumLookup(table)
            metadata_store = metadata_store or DynamoImageMetadataStore(table)

        if publisher is None:
            if events_client is None:
                events_client = session.client("events")
            publisher = EventBridgePublisher(
                events_client,
                event_bus_name=settings.event_bus_name,
                source=settings.event_source,
                logger=logger,
            )

        return AppContext(
            settings=settings,
            s3_client=s3_client,
            object_store=S3ObjectStore(s3_client, settings.media_bucket, logger),
            upload_provider=S3PresignedPostProvider(
                s3_client,
                settings.media_bucket,
                default_expires_seconds=settings.upload_expiry_seconds,
                default_max_size_bytes=settings.upload_max_size_bytes,
            ),
            album_lookup=album_lookup,
            metadata_store=metadata_store,
            publisher=publisher,
            logger=logger,
            variant_specs=settings.variant_specs,
            metrics_collector=metrics_collector,
        )

    @staticmethod
    def create_worker(context: AppContext) -> MediaIngestWorker:
        return MediaIngestWorker(
            object_store=context.object_store,
            metadata_store=context.metadata_store,
            publisher=context.publisher,
            variant_specs=context.variant_specs,
            logger=context.logger,
            metrics_collector=context.metrics_collector,
            work_dir=context.settings.work_dir,
        )

    @staticmethod
    def create_listener(context: AppContext) -> StorageEventListener:
        return StorageEventListener(
            worker=MediaIngestFactory.create_worker(context),
            media_bucket=context.settings.media_bucket,
            logger=context.logger,
        )

    @staticmethod
    def create_issuer(context: AppContext) -> UploadUrlIssuer:
        return UploadUrlIssuer(
            album_lookup=context.album_lookup,
            upload_provider=context.upload_provider,
            logger=context.logger,
            expires_seconds=context.settings.upload_expiry_seconds,
            max_size_bytes=context.settings.upload_max_size_bytes,
        )

    @staticmethod
    def create_notifier(context: AppContext) -> UploadCompletionNotifier:
        return UploadCompletionNotifier(
            album_lookup=context.album_lookup,
            publisher=context.publisher,
            logger=context.logger,
        )

    @staticmethod
    def create_retention_policy(context: AppContext, days: Optional[int] = None) -> RetentionPolicy:
        """
        Build the raw upload retention policy, optionally overriding the window.

        Raises:
            ConfigurationError: If the retention window is not a positive number of days
        """
        retention_days = context.settings.raw_retention_days if days is None else days
        try:
            return RetentionPolicy(days=retention_days)
        except pydantic.ValidationError as exc:
            raise ConfigurationError(
                f"Retention days must be a positive integer, got {retention_days}"
            ) from exc
