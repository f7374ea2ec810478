"""
Object store access for S3-compatible storage (AWS S3 and MinIO).
"""
import logging
from functools import lru_cache

import boto3
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from mealcraft.app.core.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def _get_s3_client() -> BaseClient:
    """
    Get or create a boto3 S3 client configured for AWS S3 or MinIO.

    - S3_ENDPOINT_URL: If set, uses MinIO (or custom S3-compatible endpoint)
    - S3_FORCE_PATH_STYLE: If true, uses path-style addressing (required for MinIO)
    - S3_REGION: AWS region (default: us-east-1)
    """
    settings = get_settings()

    client_kwargs = {}
    if settings.s3_force_path_style:
        client_kwargs["config"] = Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
        )
    if settings.s3_endpoint_url:
        client_kwargs["endpoint_url"] = settings.s3_endpoint_url
    if settings.aws_access_key_id and settings.aws_secret_access_key:
        client_kwargs["aws_access_key_id"] = settings.aws_access_key_id
        client_kwargs["aws_secret_access_key"] = settings.aws_secret_access_key

    return boto3.client("s3", region_name=settings.s3_region or "us-east-1", **client_kwargs)


def put_bytes(bucket: str, key: str, content_type: str, data: bytes) -> str:
    """
    Upload bytes to object storage.

    Returns:
        Full URI in format s3://bucket/key

    Raises:
        RuntimeError: If upload fails
    """
    try:
        client = _get_s3_client()
        client.put_object(Bucket=bucket, Key=key, Body=data, ContentType=content_type)
    except (BotoCoreError, ClientError) as exc:
        logger.exception("Failed to upload object to s3://%s/%s: %s", bucket, key, exc)
        raise RuntimeError(f"S3 upload failed: {exc}") from exc
    uri = uri_for(bucket, key)
    logger.debug("Uploaded object to %s", uri)
    return uri


def uri_for(bucket: str, key: str) -> str:
    return f"s3://{bucket}/{key}"
