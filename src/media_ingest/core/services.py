"""Client-facing upload services: credential issuance and completion signal."""

import uuid
from typing import Any, Dict, Optional, Type, TypeVar, Union

import pydantic
from pydantic import BaseModel

from .events import build_image_uploaded_event
from .exceptions import NotFoundError, ValidationError
from .keys import sanitize_filename, upload_key
from .models import (
    CompleteUploadRequest,
    ImageUploadedEvent,
    UploadIssued,
    UploadRequest,
)
from .protocols import AlbumLookup, EventPublisher, LoggerProtocol, UploadUrlProvider

RequestT = TypeVar("RequestT", bound=BaseModel)


def validate_request(model: Type[RequestT], data: Union[RequestT, Dict[str, Any]]) -> RequestT:
    """Validate boundary input, raising the pipeline's ValidationError."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(
            f"Invalid {model.__name__}: {exc.error_count()} error(s)",
            errors=exc.errors(include_url=False),
        ) from exc


def _require_album(album_lookup: AlbumLookup, tenant_id: str, album_id: str) -> None:
    if album_lookup.get_album(tenant_id, album_id) is None:
        raise NotFoundError(f"Album {album_id} not found for tenant {tenant_id}")


class UploadUrlIssuer:
    """Issues a scoped upload credential for an image in an existing album."""

    def __init__(
        self,
        album_lookup: AlbumLookup,
        upload_provider: UploadUrlProvider,
        logger: LoggerProtocol,
        expires_seconds: Optional[int] = None,
        max_size_bytes: Optional[int] = None,
    ):
        self._album_lookup = album_lookup
        self._upload_provider = upload_provider
        self._logger = logger
        self._expires_seconds = expires_seconds
        self._max_size_bytes = max_size_bytes

    def issue(self, request: Union[UploadRequest, Dict[str, Any]]) -> UploadIssued:
        """
        Validate the request, check the album and mint a credential.

        Re-issuing for an existing image id simply returns a newer credential
        for the same key; nothing is recorded here.

        Raises:
            ValidationError: If any field is missing or empty
            NotFoundError: If the album does not exist
        """
        req = validate_request(UploadRequest, request)
        _require_album(self._album_lookup, req.tenant_id, req.album_id)

        image_id = req.image_id or str(uuid.uuid4())
        key = upload_key(req.tenant_id, req.album_id, image_id, sanitize_filename(req.filename))
        self._logger.info(f"Issuing upload credential: {image_id} -> {key}")

        credential = self._upload_provider.create_presigned_post(
            key=key,
            content_type=req.content_type,
            expires_seconds=self._expires_seconds,
            max_size_bytes=self._max_size_bytes,
        )
        return UploadIssued(image_id=image_id, upload=credential)


class UploadCompletionNotifier:
    """
    Emits the advisory ImageUploaded signal once a client finishes uploading.

    Processing is driven by the storage notification, not by this call.
    """

    def __init__(
        self,
        album_lookup: AlbumLookup,
        publisher: EventPublisher,
        logger: LoggerProtocol,
    ):
        self._album_lookup = album_lookup
        self._publisher = publisher
        self._logger = logger

    def notify(self, request: Union[CompleteUploadRequest, Dict[str, Any]]) -> ImageUploadedEvent:
        req = validate_request(CompleteUploadRequest, request)
        _require_album(self._album_lookup, req.tenant_id, req.album_id)

        self._logger.info(f"Upload completed: {req.image_id}")
        event = build_image_uploaded_event(req.tenant_id, req.album_id, req.image_id)
        self._publisher.publish(event)
        return event
