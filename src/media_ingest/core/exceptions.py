"""Custom exceptions for the media ingestion pipeline."""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class MediaIngestError(Exception):
    """Base exception for all media ingestion errors."""


class ValidationError(MediaIngestError):
    """Error raised when boundary input fails schema validation."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []


class NotFoundError(MediaIngestError):
    """Error raised when a referenced album does not exist."""


class ConfigurationError(MediaIngestError):
    """Error raised for invalid configuration options."""


class S3Error(MediaIngestError):
    """Error raised for S3 related failures."""


class S3ObjectNotFoundError(S3Error):
    """Error raised when an S3 object does not exist."""


class ImageProcessingError(MediaIngestError):
    """Error raised when decoding or resizing an image fails."""


class PublishError(MediaIngestError):
    """Error raised when the event bus rejects an event."""
