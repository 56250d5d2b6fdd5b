# src/media_ingest/core/error_handling.py

import functools
import logging
import time

from botocore.exceptions import BotoCoreError, ClientError
from PIL import UnidentifiedImageError

from .exceptions import ImageProcessingError, S3Error, S3ObjectNotFoundError

RETRYABLE_S3_ERROR_CODES = (
    "SlowDown",
    "ThrottlingException",
    "RequestTimeout",
    "InternalError",
    "ServiceUnavailable",
)
NOT_FOUND_S3_ERROR_CODES = ("NoSuchKey", "404", "NotFound")


def client_error_code(exc: BaseException) -> str:
    """Return the AWS error code carried by a botocore ClientError, if any."""
    if isinstance(exc, ClientError):
        return str(exc.response.get("Error", {}).get("Code", ""))
    return ""


def with_error_handling(func):
    """
    A decorator to wrap storage and image functions with standardized error handling.

    botocore failures become S3Error (S3ObjectNotFoundError for missing keys),
    undecodable images become ImageProcessingError.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__ + '.' + func.__name__)
        try:
            return func(*args, **kwargs)
        except ClientError as e:
            code = client_error_code(e)
            if code in NOT_FOUND_S3_ERROR_CODES:
                logger.warning(f"Object not found in '{func.__name__}': {e}")
                raise S3ObjectNotFoundError(f"S3 object missing in {func.__name__}: {e}") from e
            logger.error(f"Error in '{func.__name__}': {e}", exc_info=True)
            raise S3Error(f"S3 operation failed in {func.__name__}: {e}") from e
        except BotoCoreError as e:
            logger.error(f"Error in '{func.__name__}': {e}", exc_info=True)
            raise S3Error(f"S3 operation failed in {func.__name__}: {e}") from e
        except UnidentifiedImageError as e:
            logger.error(f"Error in '{func.__name__}': {e}", exc_info=True)
            raise ImageProcessingError(f"Failed to identify image in {func.__name__}: {e}") from e
    return wrapper


def retry_s3_operation(max_attempts=3, initial_delay=0.5, backoff_factor=2):
    """
    Decorator to retry S3 operations with exponential backoff.

    Only throttling and transient service codes are retried; everything else
    propagates on the first failure so the invoking transport can decide.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = logging.getLogger(func.__module__ + '.' + func.__name__)
            attempts = 0
            delay = initial_delay
            while True:
                try:
                    return func(*args, **kwargs)
                except S3Error as e:
                    attempts += 1
                    if client_error_code(e.__cause__) not in RETRYABLE_S3_ERROR_CODES:
                        raise
                    if attempts >= max_attempts:
                        logger.error(
                            f"S3 operation '{func.__name__}' failed after {max_attempts} attempts. Error: {e}"
                        )
                        raise
                    logger.info(
                        f"S3 operation '{func.__name__}' throttled. Attempt {attempts}/{max_attempts}. "
                        f"Retrying in {delay:.2f}s. Error: {e}"
                    )
                    time.sleep(delay)
                    delay *= backoff_factor
        return wrapper
    return decorator
