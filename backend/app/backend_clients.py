"""
Shared helpers for creating the boto3 client targeting the S3-compatible bucket.
"""
from __future__ import annotations

from functools import lru_cache

import boto3
from botocore.config import Config

from . import config
from .errors import StoreNotConfigured

# R2 rejects virtual-host addressing on the account endpoint and handles the
# newer default checksums differently from AWS.
R2_CLIENT_CONFIG = Config(
    signature_version="s3v4",
    s3={"addressing_style": "path"},
    request_checksum_calculation="when_required",
    response_checksum_validation="when_required",
)


@lru_cache(maxsize=1)
def get_client():
    if not config.S3_ENDPOINT:
        raise StoreNotConfigured("S3_ENDPOINT must be set to reach the object store")
    if not config.S3_ACCESS_KEY_ID or not config.S3_SECRET_ACCESS_KEY:
        raise StoreNotConfigured("S3 backend credentials not configured")
    return boto3.client(
        "s3",
        endpoint_url=config.S3_ENDPOINT,
        region_name=config.S3_REGION,
        aws_access_key_id=config.S3_ACCESS_KEY_ID,
        aws_secret_access_key=config.S3_SECRET_ACCESS_KEY,
        config=R2_CLIENT_CONFIG,
    )


def get_bucket() -> str:
    if not config.S3_BUCKET:
        raise StoreNotConfigured("S3_BUCKET must be set to reach the object store")
    return config.S3_BUCKET
