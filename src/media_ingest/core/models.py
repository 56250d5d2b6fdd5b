"""Shared data models for the media ingestion pipeline."""

from datetime import datetime, timezone
from typing import Dict, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def iso_timestamp(moment: Optional[datetime] = None) -> str:
    """UTC ISO-8601 timestamp with millisecond precision and a Z suffix."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class WireModel(BaseModel):
    """Base model serialised with camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict:
        """Dump to a JSON-compatible dict using the wire field names."""
        return self.model_dump(mode="json", by_alias=True)


class UploadDescriptor(BaseModel):
    """Identity of a raw upload, derived from its storage key."""

    tenant_id: str
    album_id: str
    image_id: str
    filename: str


class VariantSpec(WireModel):
    """A configured resize target."""

    label: str
    long_edge: int


class VariantInfo(BaseModel):
    """Actual dimensions and size of a generated variant file."""

    width: int
    height: int
    size_bytes: int


class Variant(WireModel):
    """One resized derivative, as uploaded."""

    label: str
    key: str
    width: int
    height: int
    size_bytes: int


class Album(WireModel):
    """Minimal view of an album, as returned by the album lookup."""

    id: str
    tenant_id: str
    name: str = ""


class ImageRecord(WireModel):
    """Authoritative persisted image metadata."""

    id: str
    tenant_id: str
    album_id: str
    filename: str
    content_type: str
    size_bytes: int
    width: int
    height: int
    created_at: str
    original_key: Optional[str] = None
    variants: List[Variant] = Field(default_factory=list)
    processed_at: Optional[str] = None


class UploadRequest(BaseModel):
    """Boundary input for issuing an upload credential."""

    tenant_id: str = Field(min_length=1)
    album_id: str = Field(min_length=1)
    filename: str = Field(min_length=1)
    content_type: str = Field(min_length=1)
    image_id: Optional[str] = Field(default=None, min_length=1)


class CompleteUploadRequest(BaseModel):
    """Boundary input for the upload-completed signal."""

    tenant_id: str = Field(min_length=1)
    album_id: str = Field(min_length=1)
    image_id: str = Field(min_length=1)


class UploadCredential(WireModel):
    """Presigned POST payload handed to the client."""

    url: str
    fields: Dict[str, str]
    key: str
    expires_at_iso: str


class UploadIssued(WireModel):
    """Result of issuing an upload credential."""

    image_id: str
    upload: UploadCredential


PayloadT = TypeVar("PayloadT", bound=BaseModel)


class EventEnvelope(WireModel, Generic[PayloadT]):
    """Common event envelope."""

    id: str
    type: str
    occurred_at: str
    tenant_id: str
    payload: PayloadT


class ImageUploadedPayload(WireModel):
    album_id: str
    image_id: str


class ImageProcessedPayload(WireModel):
    album_id: str
    image_id: str
    original_key: str
    variants: List[Variant]


class ImageUploadedEvent(EventEnvelope[ImageUploadedPayload]):
    type: Literal["ImageUploaded"] = "ImageUploaded"


class ImageProcessedEvent(EventEnvelope[ImageProcessedPayload]):
    type: Literal["ImageProcessed"] = "ImageProcessed"


IngestStatus = Literal["processed", "skipped", "duplicate"]


class IngestResult(BaseModel):
    """Outcome of handling one storage notification record."""

    key: str
    status: IngestStatus
    image_id: Optional[str] = None
    original_key: Optional[str] = None
    variants: List[Variant] = Field(default_factory=list)
    processing_time: float = 0.0


class BatchResult(BaseModel):
    """Outcome of one listener invocation."""

    results: List[IngestResult] = Field(default_factory=list)

    @property
    def processed_count(self) -> int:
        return sum(1 for r in self.results if r.status == "processed")

    @property
    def skipped_count(self) -> int:
        return sum(1 for r in self.results if r.status != "processed")
