"""Protocol definitions for the collaborators the pipeline consumes."""

from typing import Any, Dict, List, Optional, Protocol

from .models import Album, EventEnvelope, ImageRecord, UploadCredential


class S3ClientProtocol(Protocol):
    """Subset of the boto3 S3 client used by the pipeline."""

    def get_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        """Get object from S3."""
        ...

    def put_object(self, Bucket: str, Key: str, Body: Any, ContentType: str) -> Dict[str, Any]:
        """Put object to S3."""
        ...

    def delete_object(self, Bucket: str, Key: str) -> Dict[str, Any]:
        """Delete object from S3."""
        ...

    def generate_presigned_post(
        self,
        Bucket: str,
        Key: str,
        Fields: Optional[Dict[str, Any]] = None,
        Conditions: Optional[List[Any]] = None,
        ExpiresIn: int = 3600,
    ) -> Dict[str, Any]:
        """Build a presigned POST policy."""
        ...

    def get_bucket_lifecycle_configuration(self, Bucket: str) -> Dict[str, Any]:
        """Read the bucket lifecycle rules."""
        ...

    def put_bucket_lifecycle_configuration(
        self, Bucket: str, LifecycleConfiguration: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Replace the bucket lifecycle rules."""
        ...


class AlbumLookup(Protocol):
    """Resolves an album for a tenant."""

    def get_album(self, tenant_id: str, album_id: str) -> Optional[Album]:
        """Return the album, or None if it does not exist."""
        ...


class UploadUrlProvider(Protocol):
    """Mints constrained, time-boxed write credentials."""

    def create_presigned_post(
        self,
        key: str,
        content_type: str,
        expires_seconds: Optional[int] = None,
        max_size_bytes: Optional[int] = None,
    ) -> UploadCredential:
        """Return a credential allowing one direct upload to key."""
        ...


class EventPublisher(Protocol):
    """At-least-once event publication, no ordering guarantee."""

    def publish(self, event: EventEnvelope) -> None:
        """Publish an event, raising if the bus rejects it."""
        ...


class ImageMetadataStore(Protocol):
    """Keyed get/put of image metadata, last writer wins."""

    def get(self, tenant_id: str, image_id: str) -> Optional[ImageRecord]:
        """Return the stored record, or None."""
        ...

    def put(self, record: ImageRecord) -> None:
        """Overwrite the stored record."""
        ...


class LoggerProtocol(Protocol):
    """Protocol for logging operations."""

    def debug(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log debug message."""
        ...

    def info(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log info message."""
        ...

    def warning(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log warning message."""
        ...

    def error(self, message: str, context: Any = None, **kwargs: Any) -> None:
        """Log error message."""
        ...
