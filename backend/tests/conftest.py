import io
from datetime import datetime, timedelta, timezone

import pytest
from botocore.exceptions import ClientError
from botocore.response import StreamingBody

from app import config

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def client_error(code: str, message: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


class FakeS3Client:
    """In-memory stand-in for the boto3 S3 client calls the backend makes."""

    def __init__(self, keys=None):
        self.objects = {}
        self.cors_rules = None
        self.list_calls = []
        self.presign_calls = []
        self.delete_batches = []
        self.reject_keys = {}
        self.failing_delete_calls = set()
        self.fail_with = None
        for idx, key in enumerate(keys or []):
            self.add(key, b"x" * (idx + 1), modified=BASE_TIME + timedelta(minutes=idx))

    def add(self, key, data=b"", modified=None, content_type="application/octet-stream"):
        self.objects[key] = {
            "data": data,
            "modified": modified or BASE_TIME,
            "content_type": content_type,
        }

    def _maybe_fail(self, operation):
        if self.fail_with:
            raise client_error(self.fail_with[0], self.fail_with[1], operation)

    def list_objects_v2(self, Bucket, Prefix="", MaxKeys=1000, Delimiter=None, ContinuationToken=None):
        self._maybe_fail("ListObjectsV2")
        self.list_calls.append(
            {"Prefix": Prefix, "Delimiter": Delimiter, "ContinuationToken": ContinuationToken}
        )
        entries = []
        seen_prefixes = set()
        for key in sorted(self.objects):
            if not key.startswith(Prefix):
                continue
            rest = key[len(Prefix):]
            if Delimiter and Delimiter in rest:
                common = Prefix + rest[: rest.index(Delimiter) + len(Delimiter)]
                if common not in seen_prefixes:
                    seen_prefixes.add(common)
                    entries.append(("prefix", common))
                continue
            entries.append(("object", key))

        start = int(ContinuationToken or 0)
        window = entries[start:start + MaxKeys]
        response = {"KeyCount": len(window), "IsTruncated": start + MaxKeys < len(entries)}
        contents = [
            {
                "Key": value,
                "Size": len(self.objects[value]["data"]),
                "LastModified": self.objects[value]["modified"],
                "ETag": '"etag"',
            }
            for kind, value in window
            if kind == "object"
        ]
        prefixes = [{"Prefix": value} for kind, value in window if kind == "prefix"]
        if contents:
            response["Contents"] = contents
        if prefixes:
            response["CommonPrefixes"] = prefixes
        if response["IsTruncated"]:
            response["NextContinuationToken"] = str(start + MaxKeys)
        return response

    def generate_presigned_url(self, ClientMethod, Params, ExpiresIn):
        self.presign_calls.append((ClientMethod, Params["Key"], ExpiresIn, Params.get("ContentType")))
        return (
            f"https://account.r2.cloudflarestorage.com/{Params['Bucket']}/{Params['Key']}"
            f"?X-Amz-Expires={ExpiresIn}&X-Amz-Signature=sig"
        )

    def get_object(self, Bucket, Key):
        self._maybe_fail("GetObject")
        if Key not in self.objects:
            raise client_error("NoSuchKey", "The specified key does not exist.", "GetObject")
        data = self.objects[Key]["data"]
        return {
            "Body": StreamingBody(io.BytesIO(data), len(data)),
            "ContentType": self.objects[Key]["content_type"],
            "ContentLength": len(data),
            "ETag": '"etag"',
        }

    def put_object(self, Bucket, Key, Body, ContentType=None):
        self._maybe_fail("PutObject")
        self.add(Key, Body, content_type=ContentType or "binary/octet-stream")
        return {"ETag": '"etag"'}

    def delete_object(self, Bucket, Key):
        self._maybe_fail("DeleteObject")
        self.objects.pop(Key, None)
        return {}

    def delete_objects(self, Bucket, Delete):
        keys = [item["Key"] for item in Delete["Objects"]]
        self.delete_batches.append(keys)
        if len(self.delete_batches) in self.failing_delete_calls:
            raise client_error("InternalError", "We encountered an internal error.", "DeleteObjects")
        deleted, errors = [], []
        for key in keys:
            if key in self.reject_keys:
                errors.append({"Key": key, "Code": self.reject_keys[key], "Message": "Access Denied"})
            else:
                self.objects.pop(key, None)
                deleted.append({"Key": key})
        response = {}
        if deleted:
            response["Deleted"] = deleted
        if errors:
            response["Errors"] = errors
        return response

    def get_bucket_cors(self, Bucket):
        self._maybe_fail("GetBucketCors")
        if self.cors_rules is None:
            raise client_error(
                "NoSuchCORSConfiguration", "The CORS configuration does not exist", "GetBucketCors"
            )
        return {"CORSRules": self.cors_rules}

    def put_bucket_cors(self, Bucket, CORSConfiguration):
        self._maybe_fail("PutBucketCors")
        self.cors_rules = CORSConfiguration["CORSRules"]
        return {}


@pytest.fixture()
def fake_client():
    return FakeS3Client()


@pytest.fixture(autouse=True)
def storage_config(monkeypatch):
    monkeypatch.setattr(config, "S3_PUBLIC_DOMAIN", None)
    monkeypatch.setattr(config, "DEFAULT_PAGE_SIZE", 50)
    monkeypatch.setattr(config, "MAX_PAGE_SIZE", 1000)
    monkeypatch.setattr(config, "LIST_MAX_KEYS", 1000)
    monkeypatch.setattr(config, "DELETE_BATCH_SIZE", 1000)
    monkeypatch.setattr(config, "SIGNING_CONCURRENCY", 4)
    monkeypatch.setattr(config, "ACCESS_LOCAL_BYPASS", True)


@pytest.fixture()
def make_client():
    return FakeS3Client
