"""
Thin capability wrapper around the boto3 S3 client.

Every method maps to one store primitive (or one cursor-driven sequence of
them) and translates botocore failures into ``StoreUnavailable`` so callers
above this layer never see boto3 exceptions. The adapter holds no state
besides the client handle and the bucket name.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Sequence

from botocore.exceptions import BotoCoreError, ClientError

from .errors import StoreUnavailable

logger = logging.getLogger(__name__)

DELIMITER = "/"
NO_CORS_CONFIGURATION = "NoSuchCORSConfiguration"


@dataclass(frozen=True)
class ObjectRecord:
    """Snapshot of one stored object as reported by a list call."""

    key: str
    size: int
    last_modified: datetime


@dataclass
class LevelListing:
    """Raw result of a delimiter query: one level of the key namespace."""

    prefix: str
    common_prefixes: List[str] = field(default_factory=list)
    objects: List[ObjectRecord] = field(default_factory=list)


@dataclass
class DeleteBatchResult:
    deleted: List[str] = field(default_factory=list)
    errors: List[Dict[str, str]] = field(default_factory=list)


def _record_from_listing(obj: Dict[str, Any]) -> ObjectRecord:
    return ObjectRecord(
        key=obj["Key"],
        size=max(0, int(obj.get("Size", 0))),
        last_modified=obj["LastModified"],
    )


@contextmanager
def translate_store_errors(operation: str) -> Iterator[None]:
    """Re-raise botocore failures as ``StoreUnavailable`` with the raw message."""
    try:
        yield
    except ClientError as exc:
        error = exc.response.get("Error", {})
        code = error.get("Code")
        message = error.get("Message") or str(exc)
        logger.error("S3 %s failed: %s - %s", operation, code, message)
        raise StoreUnavailable(message, code=code) from exc
    except BotoCoreError as exc:
        logger.error("S3 %s failed: %s", operation, exc)
        raise StoreUnavailable(str(exc)) from exc


class ObjectStore:
    """Bucket-scoped view of an S3-compatible client."""

    def __init__(self, client, bucket: str, *, max_keys: int = 1000) -> None:
        self.client = client
        self.bucket = bucket
        self.max_keys = max_keys

    def _list_pages(self, prefix: str, delimiter: Optional[str]) -> Iterator[Dict[str, Any]]:
        # Strictly sequential: each request needs the previous response's cursor.
        params: Dict[str, Any] = {
            "Bucket": self.bucket,
            "Prefix": prefix,
            "MaxKeys": self.max_keys,
        }
        if delimiter:
            params["Delimiter"] = delimiter
        continuation_token = None
        while True:
            if continuation_token:
                params["ContinuationToken"] = continuation_token
            with translate_store_errors("ListObjectsV2"):
                response = self.client.list_objects_v2(**params)
            yield response
            continuation_token = response.get("NextContinuationToken")
            if not continuation_token:
                break

    def list_level(self, prefix: str = "") -> LevelListing:
        """Return sub-folder prefixes and direct objects under ``prefix``."""
        listing = LevelListing(prefix=prefix)
        for response in self._list_pages(prefix, DELIMITER):
            for common in response.get("CommonPrefixes", []):
                listing.common_prefixes.append(common["Prefix"])
            for obj in response.get("Contents", []):
                listing.objects.append(_record_from_listing(obj))
        return listing

    def iter_objects(self, prefix: str = "") -> Iterator[ObjectRecord]:
        """Yield every object under ``prefix`` recursively, one list page at a time."""
        for response in self._list_pages(prefix, None):
            for obj in response.get("Contents", []):
                yield _record_from_listing(obj)

    def get_object(self, key: str) -> Dict[str, Any]:
        with translate_store_errors("GetObject"):
            return self.client.get_object(Bucket=self.bucket, Key=key)

    def put_object(self, key: str, body: bytes, content_type: Optional[str] = None) -> Dict[str, Any]:
        extra: Dict[str, Any] = {}
        if content_type:
            extra["ContentType"] = content_type
        with translate_store_errors("PutObject"):
            return self.client.put_object(Bucket=self.bucket, Key=key, Body=body, **extra)

    def delete_object(self, key: str) -> None:
        with translate_store_errors("DeleteObject"):
            self.client.delete_object(Bucket=self.bucket, Key=key)

    def delete_objects(self, keys: Sequence[str]) -> DeleteBatchResult:
        """Issue one multi-object delete call; ``keys`` must fit the store's limit."""
        with translate_store_errors("DeleteObjects"):
            response = self.client.delete_objects(
                Bucket=self.bucket,
                Delete={"Objects": [{"Key": key} for key in keys], "Quiet": False},
            )
        return DeleteBatchResult(
            deleted=[item["Key"] for item in response.get("Deleted", [])],
            errors=[
                {
                    "key": item.get("Key", ""),
                    "code": item.get("Code", ""),
                    "message": item.get("Message", ""),
                }
                for item in response.get("Errors", [])
            ],
        )

    def presign_download(self, key: str, expires_in: int) -> str:
        with translate_store_errors("PresignGetObject"):
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires_in,
            )

    def presign_upload(self, key: str, content_type: Optional[str], expires_in: int) -> str:
        params: Dict[str, Any] = {"Bucket": self.bucket, "Key": key}
        if content_type:
            params["ContentType"] = content_type
        with translate_store_errors("PresignPutObject"):
            return self.client.generate_presigned_url(
                "put_object",
                Params=params,
                ExpiresIn=expires_in,
            )

    def get_cors_rules(self) -> List[Dict[str, Any]]:
        with translate_store_errors("GetBucketCors"):
            try:
                response = self.client.get_bucket_cors(Bucket=self.bucket)
            except ClientError as exc:
                # A bucket without CORS rules answers with an error, not an empty list.
                if exc.response.get("Error", {}).get("Code") == NO_CORS_CONFIGURATION:
                    return []
                raise
        return response.get("CORSRules", [])

    def put_cors_rules(self, rules: List[Dict[str, Any]]) -> None:
        with translate_store_errors("PutBucketCors"):
            self.client.put_bucket_cors(
                Bucket=self.bucket,
                CORSConfiguration={"CORSRules": rules},
            )
