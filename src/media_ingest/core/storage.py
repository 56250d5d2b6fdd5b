"""S3 adapters: object transfer for the worker and presigned POST credentials."""

import os
import shutil
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Callable, Optional

from .error_handling import retry_s3_operation, with_error_handling
from .models import UploadCredential, iso_timestamp
from .protocols import LoggerProtocol, S3ClientProtocol

if TYPE_CHECKING:
    from mypy_boto3_s3.client import S3Client


DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class DownloadedObject:
    """Local copy of an S3 object."""

    path: str
    content_type: Optional[str]
    size_bytes: int


class S3ObjectStore:
    """Blocking transfers against a single media bucket."""

    def __init__(
        self,
        s3_client: "S3ClientProtocol | S3Client",
        bucket: str,
        logger: LoggerProtocol,
    ):
        self._s3_client = s3_client
        self._bucket = bucket
        self._logger = logger

    @property
    def bucket(self) -> str:
        return self._bucket

    @retry_s3_operation()
    @with_error_handling
    def download(self, key: str, path: str) -> DownloadedObject:
        """Stream s3://bucket/key into path."""
        self._logger.debug(f"Downloading s3://{self._bucket}/{key}")
        response = self._s3_client.get_object(Bucket=self._bucket, Key=key)
        with open(path, "wb") as fh:
            shutil.copyfileobj(response["Body"], fh)
        return DownloadedObject(
            path=path,
            content_type=response.get("ContentType") or None,
            size_bytes=os.path.getsize(path),
        )

    @retry_s3_operation()
    @with_error_handling
    def upload(self, path: str, key: str, content_type: Optional[str]) -> None:
        """Upload a local file, overwriting any existing object."""
        self._logger.debug(f"Uploading to s3://{self._bucket}/{key}")
        with open(path, "rb") as fh:
            self._s3_client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=fh,
                ContentType=content_type or DEFAULT_CONTENT_TYPE,
            )

    @with_error_handling
    def delete(self, key: str) -> None:
        """Delete an object. Deleting a missing key is a no-op on S3."""
        self._logger.debug(f"Deleting s3://{self._bucket}/{key}")
        self._s3_client.delete_object(Bucket=self._bucket, Key=key)


class S3PresignedPostProvider:
    """Mints presigned POST policies scoped to one key."""

    def __init__(
        self,
        s3_client: "S3ClientProtocol | S3Client",
        bucket: str,
        default_expires_seconds: int = 300,
        default_max_size_bytes: int = 50 * 1024 * 1024,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._s3_client = s3_client
        self._bucket = bucket
        self._default_expires_seconds = default_expires_seconds
        self._default_max_size_bytes = default_max_size_bytes
        self._clock = clock

    @with_error_handling
    def create_presigned_post(
        self,
        key: str,
        content_type: str,
        expires_seconds: Optional[int] = None,
        max_size_bytes: Optional[int] = None,
    ) -> UploadCredential:
        """
        Build a credential for one direct browser upload.

        The policy pins the key, requires a Content-Type sharing the requested
        type's major part (``image`` for ``image/jpeg``) and bounds the body
        to [1, max_size_bytes] bytes.
        """
        expires = expires_seconds or self._default_expires_seconds
        max_size = max_size_bytes or self._default_max_size_bytes
        issued_at = self._clock()

        result = self._s3_client.generate_presigned_post(
            Bucket=self._bucket,
            Key=key,
            Fields={"Content-Type": content_type},
            Conditions=[
                ["starts-with", "$Content-Type", content_type.split("/")[0]],
                ["content-length-range", 1, max_size],
            ],
            ExpiresIn=expires,
        )
        return UploadCredential(
            url=result["url"],
            fields={k: str(v) for k, v in result["fields"].items()},
            key=key,
            expires_at_iso=iso_timestamp(issued_at + timedelta(seconds=expires)),
        )
