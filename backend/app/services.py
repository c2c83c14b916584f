"""
Service layer between the HTTP routes and the storage components.

The object store handle is built once per request and passed explicitly into
the listing engine, paginator and bulk delete coordinator, so tests can hand
in a fake store instead of a boto3 client. These helpers are synchronous by
design (boto3 is blocking); routes call them through a threadpool.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from . import backend_clients, config
from .bulk_delete import BulkDeleteCoordinator, BulkDeleteReport
from .errors import InvalidArgument
from .listing import FileEntry, ListingEngine
from .models import (
    BucketStatsInfo,
    BulkDeleteResponse,
    DeleteError,
    FailedBatch,
    FileInfo,
    FolderInfo,
    ObjectInfo,
    PaginationInfo,
    StorageListing,
    UploadUrlResponse,
)
from .object_store import ObjectStore
from .pagination import FolderPaginator

logger = logging.getLogger(__name__)


def get_object_store() -> ObjectStore:
    return ObjectStore(
        backend_clients.get_client(),
        backend_clients.get_bucket(),
        max_keys=config.LIST_MAX_KEYS,
    )


def normalize_page_size(limit: Optional[int]) -> int:
    if limit is None or limit < 1:
        return config.DEFAULT_PAGE_SIZE
    return min(limit, config.MAX_PAGE_SIZE)


def _require_key(key: Optional[str], what: str = "key") -> str:
    if not key or not key.strip():
        raise InvalidArgument(f"No {what} provided")
    return key


def _file_info(entry: FileEntry) -> FileInfo:
    return FileInfo(
        key=entry.key,
        name=entry.display_name,
        size=entry.size,
        last_modified=entry.last_modified,
        type=entry.type,
        category=entry.category,
        url=entry.url,
    )


def bulk_delete_response(report: BulkDeleteReport) -> BulkDeleteResponse:
    failed = [
        FailedBatch(batch=f.batch_number, keys=f.keys, message=f.message, code=f.code)
        for f in report.failed_batches
    ]
    return BulkDeleteResponse(
        success=report.completed,
        deleted=report.deleted_count,
        errors=[DeleteError(**error) for error in report.errors],
        failed_batches=failed or None,
        error=None if report.completed else report.failed_batches[0].message,
    )


class StorageService:
    """Operations behind /storage and /settings for one bucket."""

    def __init__(self, store: ObjectStore) -> None:
        self.store = store
        self.engine = ListingEngine(
            store,
            download_ttl=config.DOWNLOAD_URL_TTL,
            public_domain=config.S3_PUBLIC_DOMAIN,
            signing_concurrency=config.SIGNING_CONCURRENCY,
        )
        self.paginator = FolderPaginator(self.engine)
        self.deleter = BulkDeleteCoordinator(store, batch_size=config.DELETE_BATCH_SIZE)

    def list_storage(
        self,
        prefix: str = "",
        page: int = 1,
        limit: Optional[int] = None,
        include_all_stats: bool = False,
        sort: Optional[str] = None,
        search: Optional[str] = None,
    ) -> StorageListing:
        page_size = normalize_page_size(limit)
        result = self.paginator.page(prefix, page, page_size, sort=sort, search=search)

        all_files = None
        stats = None
        if include_all_stats:
            records = self.engine.list_all()
            summary = self.engine.summarize(records)
            all_files = [
                ObjectInfo(
                    key=record.key,
                    name=record.key.rsplit("/", 1)[-1],
                    size=record.size,
                    last_modified=record.last_modified,
                )
                for record in records
            ]
            stats = BucketStatsInfo(
                total_files=summary.total_files, total_size=summary.total_size
            )

        return StorageListing(
            folders=[
                FolderInfo(name=folder.full_prefix, display_name=folder.display_name)
                for folder in result.folders
            ],
            files=[_file_info(entry) for entry in result.files],
            all_files=all_files,
            stats=stats,
            pagination=PaginationInfo(
                current_page=result.page,
                total_pages=result.total_pages,
                total_files=result.total_files,
                limit=result.page_size,
                has_next_page=result.has_next_page,
                has_prev_page=result.has_prev_page,
            ),
        )

    def create_upload_url(self, filename: Optional[str], content_type: Optional[str]) -> UploadUrlResponse:
        """Issue a short-lived write URL. The object exists only once the caller uploads."""
        key = _require_key(filename, "filename")
        url = self.store.presign_upload(key, content_type, config.UPLOAD_URL_TTL)
        logger.info("Issued upload URL for %s", key)
        return UploadUrlResponse(url=url, key=key, expires_in=config.UPLOAD_URL_TTL)

    def bulk_delete(self, keys: Optional[Sequence[Any]]) -> BulkDeleteReport:
        if not keys:
            raise InvalidArgument("No keys provided")
        return self.deleter.delete(keys)

    def delete_object(self, key: Optional[str]) -> None:
        key = _require_key(key)
        self.store.delete_object(key)
        logger.info("Deleted %s", key)

    def open_object(self, key: Optional[str]) -> Dict[str, Any]:
        return self.store.get_object(_require_key(key))

    def put_object(self, key: Optional[str], body: bytes, content_type: Optional[str]) -> Dict[str, Any]:
        key = _require_key(key)
        response = self.store.put_object(key, body, content_type)
        logger.info("Stored %s (%s bytes)", key, len(body))
        return response

    def get_cors_rules(self) -> List[Dict[str, Any]]:
        return self.store.get_cors_rules()

    def put_cors_rules(self, rules: List[Dict[str, Any]]) -> None:
        self.store.put_cors_rules(rules)
        logger.info("Replaced bucket CORS configuration with %s rules", len(rules))


def get_storage_service() -> StorageService:
    return StorageService(get_object_store())
