"""Core components of the media ingestion pipeline."""

from .exceptions import (
    MediaIngestError,
    ValidationError,
    NotFoundError,
    ConfigurationError,
    S3Error,
    S3ObjectNotFoundError,
    ImageProcessingError,
    PublishError,
)
from .image_utils import compute_target_size, generate_variant, read_source_image
from .keys import parse_upload_key, public_key, sanitize_filename, upload_key
from .logging_config import get_child_logger, get_logger, setup_logger
from .models import (
    ImageProcessedEvent,
    ImageRecord,
    ImageUploadedEvent,
    IngestResult,
    UploadCredential,
    UploadDescriptor,
    UploadRequest,
    Variant,
    VariantSpec,
)

__all__ = [
    "MediaIngestError",
    "ValidationError",
    "NotFoundError",
    "ConfigurationError",
    "S3Error",
    "S3ObjectNotFoundError",
    "ImageProcessingError",
    "PublishError",
    "compute_target_size",
    "generate_variant",
    "read_source_image",
    "parse_upload_key",
    "public_key",
    "sanitize_filename",
    "upload_key",
    "get_child_logger",
    "get_logger",
    "setup_logger",
    "ImageProcessedEvent",
    "ImageRecord",
    "ImageUploadedEvent",
    "IngestResult",
    "UploadCredential",
    "UploadDescriptor",
    "UploadRequest",
    "Variant",
    "VariantSpec",
]
