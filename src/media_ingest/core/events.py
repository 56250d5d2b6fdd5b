"""Domain events and the EventBridge publisher."""

import json
import uuid
from datetime import datetime
from typing import Any, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import PublishError
from .models import (
    EventEnvelope,
    ImageProcessedEvent,
    ImageProcessedPayload,
    ImageUploadedEvent,
    ImageUploadedPayload,
    Variant,
    iso_timestamp,
)
from .protocols import LoggerProtocol


def build_image_uploaded_event(
    tenant_id: str, album_id: str, image_id: str, occurred_at: Optional[str] = None
) -> ImageUploadedEvent:
    """The event id is the image id so consumers can dedupe repeated signals."""
    return ImageUploadedEvent(
        id=image_id,
        occurred_at=occurred_at or iso_timestamp(),
        tenant_id=tenant_id,
        payload=ImageUploadedPayload(album_id=album_id, image_id=image_id),
    )


def build_image_processed_event(
    tenant_id: str,
    album_id: str,
    image_id: str,
    original_key: str,
    variants: List[Variant],
    occurred_at: Optional[str] = None,
) -> ImageProcessedEvent:
    """Each processing run gets a fresh event id."""
    return ImageProcessedEvent(
        id=str(uuid.uuid4()),
        occurred_at=occurred_at or iso_timestamp(),
        tenant_id=tenant_id,
        payload=ImageProcessedPayload(
            album_id=album_id,
            image_id=image_id,
            original_key=original_key,
            variants=variants,
        ),
    )


class EventBridgePublisher:
    """Publishes event envelopes to an EventBridge bus."""

    def __init__(
        self,
        events_client: Any,
        event_bus_name: str,
        source: str,
        logger: LoggerProtocol,
    ):
        self._events_client = events_client
        self._event_bus_name = event_bus_name
        self._source = source
        self._logger = logger

    def publish(self, event: EventEnvelope) -> None:
        detail = event.to_wire()
        entry = {
            "EventBusName": self._event_bus_name,
            "Source": self._source,
            "DetailType": event.type,
            "Time": datetime.fromisoformat(event.occurred_at.replace("Z", "+00:00")),
            "Detail": json.dumps(detail),
        }
        try:
            response = self._events_client.put_events(Entries=[entry])
        except (BotoCoreError, ClientError) as exc:
            raise PublishError(f"Failed to publish {event.type} {event.id}: {exc}") from exc

        if response.get("FailedEntryCount", 0):
            failure = (response.get("Entries") or [{}])[0]
            raise PublishError(
                f"Event bus rejected {event.type} {event.id}: "
                f"{failure.get('ErrorCode')} {failure.get('ErrorMessage')}"
            )
        self._logger.debug(f"Published {event.type} {event.id} to {self._event_bus_name}")
