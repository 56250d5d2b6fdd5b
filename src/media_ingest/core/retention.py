"""Lifecycle rule that expires raw uploads the worker never cleaned up."""

from typing import Any, Dict, List

from botocore.exceptions import ClientError
from pydantic import BaseModel, Field

from .error_handling import client_error_code, with_error_handling
from .keys import UPLOAD_PREFIX
from .protocols import LoggerProtocol, S3ClientProtocol

RETENTION_RULE_ID = "expire-raw-uploads"


class RetentionPolicy(BaseModel):
    """Expire everything under prefix after days."""

    prefix: str = f"{UPLOAD_PREFIX}/"
    days: int = Field(default=3, gt=0)
    rule_id: str = RETENTION_RULE_ID


def build_lifecycle_rule(policy: RetentionPolicy) -> Dict[str, Any]:
    """S3 lifecycle rule for the policy, also aborting stale multipart uploads."""
    return {
        "ID": policy.rule_id,
        "Filter": {"Prefix": policy.prefix},
        "Status": "Enabled",
        "Expiration": {"Days": policy.days},
        "AbortIncompleteMultipartUpload": {"DaysAfterInitiation": 1},
    }


def _existing_rules(s3_client: S3ClientProtocol, bucket: str) -> List[Dict[str, Any]]:
    try:
        response = s3_client.get_bucket_lifecycle_configuration(Bucket=bucket)
    except ClientError as exc:
        if client_error_code(exc) == "NoSuchLifecycleConfiguration":
            return []
        raise
    return list(response.get("Rules", []))


@with_error_handling
def apply_retention_policy(
    s3_client: S3ClientProtocol,
    bucket: str,
    policy: RetentionPolicy,
    logger: LoggerProtocol,
) -> List[Dict[str, Any]]:
    """
    Install the retention rule on bucket, keeping unrelated rules.

    A rule with the same id is replaced, so applying twice is harmless.

    Returns:
        The full rule list written to the bucket
    """
    rules = [r for r in _existing_rules(s3_client, bucket) if r.get("ID") != policy.rule_id]
    rules.append(build_lifecycle_rule(policy))
    s3_client.put_bucket_lifecycle_configuration(
        Bucket=bucket, LifecycleConfiguration={"Rules": rules}
    )
    logger.info(
        f"Applied retention rule {policy.rule_id} to s3://{bucket}/{policy.prefix} "
        f"({policy.days} days)"
    )
    return rules
