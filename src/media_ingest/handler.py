"""
AWS Lambda entry point for media bucket object-created notifications.

The dependency context is built once per execution environment, at import,
and reused by every invocation. A raised exception fails the invocation so
the S3/SQS trigger redelivers the batch.
"""

from typing import Any, Dict

from .config import Settings
from .core.factories import MediaIngestFactory

APP_CONTEXT = MediaIngestFactory.create_context(Settings())
LISTENER = MediaIngestFactory.create_listener(APP_CONTEXT)


def handler(event: Dict[str, Any], context: object) -> Dict[str, Any]:
    """Process every record in the notification batch, sequentially."""
    batch = LISTENER.handle(event)
    return {
        "processed": batch.processed_count,
        "skipped": batch.skipped_count,
        "results": [result.model_dump(mode="json") for result in batch.results],
    }
