"""
FastAPI router for browsing and mutating the bucket.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse

from . import models
from .auth import require_access
from .services import StorageService, bulk_delete_response, get_storage_service

router = APIRouter(
    prefix="/storage",
    tags=["storage"],
    dependencies=[Depends(require_access)],
)


@router.get("", response_model=models.StorageListing, response_model_exclude_none=True)
async def list_storage(
    prefix: str = "",
    page: int = 1,
    limit: Optional[int] = None,
    include_all_stats: bool = Query(False, alias="includeAllStats"),
    sort: Optional[str] = None,
    search: Optional[str] = None,
    service: StorageService = Depends(get_storage_service),
):
    """List one folder level, paginated, with signed URLs for the visible page."""
    return await run_in_threadpool(
        service.list_storage,
        prefix,
        page,
        limit,
        include_all_stats,
        sort,
        search,
    )


@router.post("")
async def storage_action(
    payload: models.StorageAction,
    response: Response,
    service: StorageService = Depends(get_storage_service),
):
    """Issue an upload URL, or bulk-delete keys when ``action`` is ``bulk-delete``."""
    if payload.action == models.BULK_DELETE_ACTION:
        report = await run_in_threadpool(service.bulk_delete, payload.keys)
        result = bulk_delete_response(report)
        if not result.success:
            response.status_code = 502
        return result.model_dump(by_alias=True, exclude_none=True)

    result = await run_in_threadpool(
        service.create_upload_url, payload.filename, payload.content_type
    )
    return result.model_dump(by_alias=True)


@router.delete("", response_model=models.SuccessResponse)
async def delete_object(
    key: Optional[str] = None,
    service: StorageService = Depends(get_storage_service),
):
    """Delete a single object. S3 and R2 report success for a key that does not exist."""
    await run_in_threadpool(service.delete_object, key)
    return models.SuccessResponse()


@router.get("/object")
async def download_object(
    key: Optional[str] = None,
    service: StorageService = Depends(get_storage_service),
):
    """Stream an object through the API for clients that cannot reach the store."""
    response = await run_in_threadpool(service.open_object, key)
    headers = {"ETag": response.get("ETag", "")}
    if response.get("ContentLength") is not None:
        headers["Content-Length"] = str(response["ContentLength"])
    return StreamingResponse(
        response["Body"].iter_chunks(),
        media_type=response.get("ContentType", "application/octet-stream"),
        headers=headers,
    )


@router.put("/object")
async def upload_object(
    request: Request,
    key: Optional[str] = None,
    service: StorageService = Depends(get_storage_service),
):
    """Store the raw request body under ``key``."""
    body = await request.body()
    stored = await run_in_threadpool(
        service.put_object, key, body, request.headers.get("content-type")
    )
    return {"success": True, "key": key, "etag": stored.get("ETag", "").strip('"')}
