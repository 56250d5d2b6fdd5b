"""Per-object ingestion pipeline driven by storage notifications."""

import os
import tempfile
import time
from typing import Callable, List, Optional

from .events import build_image_processed_event
from .exceptions import S3ObjectNotFoundError
from .image_utils import SourceImage, generate_variant, orient_original, read_source_image
from .keys import ORIGINAL_LABEL, parse_upload_key, public_key
from .models import (
    ImageRecord,
    IngestResult,
    UploadDescriptor,
    Variant,
    VariantSpec,
    iso_timestamp,
)
from .observability import LogContext, MetricsCollector, PerformanceMetrics
from .protocols import EventPublisher, ImageMetadataStore, LoggerProtocol
from .storage import DEFAULT_CONTENT_TYPE, DownloadedObject, S3ObjectStore


class MediaIngestWorker:
    """
    Turns one raw upload into published variants, metadata and an event.

    Stages for a conforming key, in order:

    1. download the raw object into a private temporary directory
    2. decode dimensions (EXIF orientation applied)
    3. for each variant spec: resize, upload, record, delete the local file
    4. upload the orientation-corrected original under ``public/``
    5. merge with any prior record and overwrite it
    6. publish ImageProcessed
    7. delete the raw upload (failure is logged only)

    Any failure in stages 1-6 propagates so the invoking transport retries.
    The raw object is left in place until stage 6 succeeds. Every write is an
    overwrite keyed by image id, so a rerun converges on the same state.
    """

    def __init__(
        self,
        object_store: S3ObjectStore,
        metadata_store: ImageMetadataStore,
        publisher: EventPublisher,
        variant_specs: List[VariantSpec],
        logger: LoggerProtocol,
        metrics_collector: Optional[MetricsCollector] = None,
        work_dir: Optional[str] = None,
        clock: Callable[[], str] = iso_timestamp,
    ):
        self._object_store = object_store
        self._metadata_store = metadata_store
        self._publisher = publisher
        self._variant_specs = list(variant_specs)
        self._logger = logger
        self._metrics_collector = metrics_collector
        self._work_dir = work_dir
        self._clock = clock

    @property
    def variant_specs(self) -> List[VariantSpec]:
        return list(self._variant_specs)

    def process_key(self, key: str) -> IngestResult:
        """Run the pipeline for one decoded storage key."""
        descriptor = parse_upload_key(key)
        if descriptor is None:
            self._logger.debug(f"Skipping key {key} (does not match uploads prefix)")
            return IngestResult(key=key, status="skipped")

        log_context = LogContext(
            operation="process_upload",
            component="media_ingest_worker",
            tenant_id=descriptor.tenant_id,
        ).with_metadata(
            album_id=descriptor.album_id,
            image_id=descriptor.image_id,
            key=key,
        )

        start_time = time.time()
        success = False
        error_message = None
        try:
            result = self._process(key, descriptor, log_context)
            result.processing_time = time.time() - start_time
            success = True
            self._logger.info(
                f"Upload {result.status}",
                log_context,
                processing_time_ms=round(result.processing_time * 1000, 1),
            )
            return result
        except Exception as exc:
            error_message = str(exc)
            self._logger.error(
                "Upload processing failed",
                log_context.with_metadata(error=error_message),
            )
            raise
        finally:
            if self._metrics_collector is not None:
                self._metrics_collector.record_metric(
                    PerformanceMetrics(
                        operation="process_upload",
                        start_time=start_time,
                        end_time=time.time(),
                        success=success,
                        error_message=error_message,
                        metadata={"image_id": descriptor.image_id},
                    )
                )

    def _process(self, key: str, descriptor: UploadDescriptor, log_context: LogContext) -> IngestResult:
        with tempfile.TemporaryDirectory(prefix="media-", dir=self._work_dir) as work_dir:
            # Only the basename touches the local disk; the key keeps the full filename.
            local_name = os.path.basename(descriptor.filename) or "original"

            self._logger.debug("Downloading raw upload", log_context.with_operation("download"))
            try:
                downloaded = self._object_store.download(key, os.path.join(work_dir, local_name))
            except S3ObjectNotFoundError:
                if self._already_processed(descriptor, log_context):
                    return IngestResult(key=key, status="duplicate", image_id=descriptor.image_id)
                raise

            self._logger.debug("Decoding source", log_context.with_operation("decode"))
            source = read_source_image(downloaded.path)

            variants = self._publish_variants(descriptor, downloaded, source, work_dir, log_context)

            original_key = public_key(descriptor, ORIGINAL_LABEL)
            self._logger.debug("Uploading original", log_context.with_operation("upload_original"))
            oriented_path = orient_original(source, os.path.join(work_dir, f"oriented-{local_name}"))
            self._object_store.upload(oriented_path, original_key, downloaded.content_type)

            record = self._persist(descriptor, downloaded, source, original_key, variants, log_context)

            self._logger.debug("Publishing ImageProcessed", log_context.with_operation("publish"))
            event = build_image_processed_event(
                tenant_id=descriptor.tenant_id,
                album_id=descriptor.album_id,
                image_id=descriptor.image_id,
                original_key=original_key,
                variants=variants,
                occurred_at=record.processed_at,
            )
            self._publisher.publish(event)

            self._delete_raw(key, log_context)

        return IngestResult(
            key=key,
            status="processed",
            image_id=descriptor.image_id,
            original_key=original_key,
            variants=variants,
        )

    def _publish_variants(
        self,
        descriptor: UploadDescriptor,
        downloaded: DownloadedObject,
        source: SourceImage,
        work_dir: str,
        log_context: LogContext,
    ) -> List[Variant]:
        """Generate and upload variants one at a time; one local file at most."""
        variants: List[Variant] = []
        local_name = os.path.basename(downloaded.path)
        for spec in self._variant_specs:
            variant_path = os.path.join(work_dir, f"{spec.label}-{local_name}")
            variant_key = public_key(descriptor, spec.label)
            try:
                info = generate_variant(source.path, variant_path, spec.long_edge, source.format)
                self._object_store.upload(variant_path, variant_key, downloaded.content_type)
            finally:
                if os.path.exists(variant_path):
                    os.remove(variant_path)

            variants.append(
                Variant(
                    label=spec.label,
                    key=variant_key,
                    width=info.width,
                    height=info.height,
                    size_bytes=info.size_bytes,
                )
            )
            self._logger.debug(
                f"Variant {spec.label} uploaded",
                log_context.with_operation("variant"),
                width=info.width,
                height=info.height,
            )
        return variants

    def _persist(
        self,
        descriptor: UploadDescriptor,
        downloaded: DownloadedObject,
        source: SourceImage,
        original_key: str,
        variants: List[Variant],
        log_context: LogContext,
    ) -> ImageRecord:
        existing = self._load_existing(descriptor, log_context)
        now = self._clock()
        record = ImageRecord(
            id=descriptor.image_id,
            tenant_id=descriptor.tenant_id,
            album_id=descriptor.album_id,
            filename=(existing.filename if existing and existing.filename else descriptor.filename),
            content_type=(
                (existing.content_type if existing and existing.content_type else None)
                or downloaded.content_type
                or DEFAULT_CONTENT_TYPE
            ),
            size_bytes=downloaded.size_bytes,
            width=source.width,
            height=source.height,
            created_at=(existing.created_at if existing and existing.created_at else now),
            original_key=original_key,
            variants=variants,
            processed_at=now,
        )
        self._logger.debug("Persisting image record", log_context.with_operation("persist"))
        self._metadata_store.put(record)
        return record

    def _load_existing(self, descriptor: UploadDescriptor, log_context: LogContext) -> Optional[ImageRecord]:
        try:
            return self._metadata_store.get(descriptor.tenant_id, descriptor.image_id)
        except Exception as exc:
            self._logger.warning(
                "Prior record lookup failed, treating as new",
                log_context.with_metadata(error=str(exc)),
            )
            return None

    def _already_processed(self, descriptor: UploadDescriptor, log_context: LogContext) -> bool:
        existing = self._load_existing(descriptor, log_context)
        if existing is not None and existing.processed_at:
            self._logger.info("Raw upload already processed and removed", log_context)
            return True
        return False

    def _delete_raw(self, key: str, log_context: LogContext) -> None:
        try:
            self._object_store.delete(key)
        except Exception as exc:
            self._logger.warning(
                "Failed to delete raw upload object",
                log_context.with_operation("cleanup").with_metadata(error=str(exc)),
            )
