"""
Shared Pydantic models describing request/response payloads.

Field names are snake_case in Python and camelCase on the wire.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

BULK_DELETE_ACTION = "bulk-delete"


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FolderInfo(ApiModel):
    name: str
    display_name: str


class FileInfo(ApiModel):
    key: str
    name: str
    size: int
    last_modified: datetime
    type: str
    category: str
    url: Optional[str] = None


class ObjectInfo(ApiModel):
    key: str
    name: str
    size: int
    last_modified: datetime


class PaginationInfo(ApiModel):
    current_page: int
    total_pages: int
    total_files: int
    limit: int
    has_next_page: bool
    has_prev_page: bool


class BucketStatsInfo(ApiModel):
    total_files: int
    total_size: int


class StorageListing(ApiModel):
    folders: List[FolderInfo]
    files: List[FileInfo]
    all_files: Optional[List[ObjectInfo]] = None
    stats: Optional[BucketStatsInfo] = None
    pagination: PaginationInfo


class StorageAction(ApiModel):
    """
    Body of POST /storage.

    Either ``{"filename", "contentType"}`` to request an upload URL, or
    ``{"action": "bulk-delete", "keys": [...]}``.
    """

    action: Optional[str] = None
    filename: Optional[str] = None
    content_type: Optional[str] = None
    keys: Optional[List[Any]] = None


class UploadUrlResponse(ApiModel):
    url: str
    key: str
    expires_in: int


class DeleteError(ApiModel):
    key: str
    code: str
    message: str


class FailedBatch(ApiModel):
    batch: int
    keys: List[str]
    message: str
    code: Optional[str] = None


class BulkDeleteResponse(ApiModel):
    success: bool
    deleted: int
    errors: List[DeleteError] = Field(default_factory=list)
    failed_batches: Optional[List[FailedBatch]] = None
    error: Optional[str] = None


class SuccessResponse(ApiModel):
    success: bool = True


class CorsRule(BaseModel):
    """One bucket CORS rule, in the store's own PascalCase vocabulary."""

    model_config = ConfigDict(extra="forbid")

    ID: Optional[str] = None
    AllowedOrigins: List[str]
    AllowedMethods: List[str]
    AllowedHeaders: Optional[List[str]] = None
    ExposeHeaders: Optional[List[str]] = None
    MaxAgeSeconds: Optional[int] = None

    def to_store(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class CorsSettings(BaseModel):
    rules: List[CorsRule]
