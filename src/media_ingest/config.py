"""Runtime configuration for the media ingestion pipeline."""

import json
from typing import Any, List, Optional, Set, Union

from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.keys import ORIGINAL_LABEL
from .core.logging_config import get_child_logger
from .core.models import VariantSpec

DEFAULT_VARIANT_SPECS: List[VariantSpec] = [
    VariantSpec(label="xl", long_edge=1900),
    VariantSpec(label="lg", long_edge=1200),
    VariantSpec(label="md", long_edge=800),
]

DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024
DEFAULT_UPLOAD_EXPIRY_SECONDS = 300
DEFAULT_RAW_RETENTION_DAYS = 3


def _label_problem(label: str, seen: Set[str]) -> Optional[str]:
    if not label:
        return "empty label"
    if "/" in label or "\\" in label or label in (".", ".."):
        return "label must be a single key segment"
    if label == ORIGINAL_LABEL:
        return f"label '{ORIGINAL_LABEL}' is reserved for the republished original"
    if label in seen:
        return "duplicate label"
    return None


def _coerce_long_edge(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def load_variant_specs(raw: Union[str, List[Any], None]) -> List[VariantSpec]:
    """
    Parse the configured variant list, falling back to the defaults.

    Accepts a JSON string or an already decoded list of ``{label, longEdge}``
    objects. Entries are dropped when the label is empty, is not a single
    key segment, is the reserved ``original`` label or repeats an earlier
    label, or when the edge is not positive. If nothing usable remains the
    default xl/lg/md set is returned.
    """
    logger = get_child_logger("config")
    entries: List[Any] = []

    if isinstance(raw, str) and raw.strip():
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning(f"Failed to parse IMAGE_VARIANTS, using defaults: {exc}")
            decoded = []
        entries = decoded if isinstance(decoded, list) else []
    elif isinstance(raw, list):
        entries = raw

    specs: List[VariantSpec] = []
    seen: Set[str] = set()
    for entry in entries:
        if not isinstance(entry, dict):
            logger.warning(f"Ignoring malformed variant entry: {entry!r}")
            continue
        label = str(entry.get("label") or "").strip()
        long_edge = _coerce_long_edge(entry.get("longEdge", entry.get("long_edge")))
        problem = _label_problem(label, seen)
        if problem is None and long_edge <= 0:
            problem = "longEdge must be a positive integer"
        if problem is not None:
            logger.warning(f"Ignoring invalid variant entry {entry!r}: {problem}")
            continue
        seen.add(label)
        specs.append(VariantSpec(label=label, long_edge=long_edge))

    if not specs:
        if raw:
            logger.warning("No valid variant specs configured, using defaults")
        return [spec.model_copy() for spec in DEFAULT_VARIANT_SPECS]
    return specs


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── AWS ───────────────────────────────────────────────────────────────────
    aws_region: str = "us-east-1"
    media_bucket: str = ""
    table_name: str = ""
    event_bus_name: str = "default"
    event_source: str = "media-ingest.processor"

    # ── Upload credentials ───────────────────────────────────────────────────
    upload_max_size_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    upload_expiry_seconds: int = DEFAULT_UPLOAD_EXPIRY_SECONDS

    # ── Processing ───────────────────────────────────────────────────────────
    image_variants: Optional[str] = None  # JSON list of {label, longEdge}
    work_dir: Optional[str] = None

    # ── Retention ────────────────────────────────────────────────────────────
    raw_retention_days: int = DEFAULT_RAW_RETENTION_DAYS

    @property
    def variant_specs(self) -> List[VariantSpec]:
        return load_variant_specs(self.image_variants)
