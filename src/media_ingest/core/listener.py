"""Storage notification intake: bucket filtering, key decoding, dispatch."""

import json
import urllib.parse
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .models import BatchResult, IngestResult
from .protocols import LoggerProtocol
from .worker import MediaIngestWorker


def iter_s3_records(
    event: Dict[str, Any], logger: Optional[LoggerProtocol] = None
) -> Iterator[Dict[str, Any]]:
    """
    Yield S3 notification records, unwrapping SQS-delivered batches.

    An SQS message whose body is not an S3 notification document is logged
    and skipped.
    """
    for record in event.get("Records", []) or []:
        if record.get("eventSource") != "aws:sqs":
            yield record
            continue
        try:
            body = json.loads(record.get("body") or "{}")
        except json.JSONDecodeError as exc:
            if logger is not None:
                logger.warning(
                    f"Skipping SQS message {record.get('messageId', '<unknown>')} "
                    f"with undecodable body: {exc}"
                )
            continue
        if not isinstance(body, dict):
            if logger is not None:
                logger.warning(
                    f"Skipping SQS message {record.get('messageId', '<unknown>')} "
                    "whose body is not a notification document"
                )
            continue
        yield from body.get("Records", []) or []


def extract_object(record: Dict[str, Any]) -> Tuple[str, str]:
    """Return (bucket, decoded key) for one S3 notification record."""
    s3_info = record.get("s3", {})
    bucket = s3_info.get("bucket", {}).get("name", "")
    key = urllib.parse.unquote_plus(s3_info.get("object", {}).get("key", ""))
    return bucket, key


class StorageEventListener:
    """
    Feeds object-created notifications for the media bucket to the worker.

    Records are handled one after another. The first failing record raises,
    which fails the invocation so the transport redelivers the batch.
    """

    def __init__(self, worker: MediaIngestWorker, media_bucket: str, logger: LoggerProtocol):
        self._worker = worker
        self._media_bucket = media_bucket
        self._logger = logger

    def handle(self, event: Dict[str, Any]) -> BatchResult:
        results: List[IngestResult] = []
        for record in iter_s3_records(event, self._logger):
            result = self.handle_record(record)
            if result is not None:
                results.append(result)
        return BatchResult(results=results)

    def handle_record(self, record: Dict[str, Any]) -> Optional[IngestResult]:
        bucket, key = extract_object(record)
        if bucket != self._media_bucket:
            self._logger.info(f"Skipping record for bucket {bucket or '<none>'}")
            return None
        if not key:
            self._logger.debug("Skipping record without object key")
            return None
        return self._worker.process_key(key)
