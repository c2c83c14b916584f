"""
FastAPI router for the bucket CORS configuration.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from . import models
from .auth import require_access
from .services import StorageService, get_storage_service

router = APIRouter(
    prefix="/settings",
    tags=["settings"],
    dependencies=[Depends(require_access)],
)


@router.get("")
async def get_cors_settings(service: StorageService = Depends(get_storage_service)):
    """Return the bucket's CORS rules; a bucket without rules yields an empty list."""
    rules = await run_in_threadpool(service.get_cors_rules)
    return {"rules": rules}


@router.post("", response_model=models.SuccessResponse)
async def put_cors_settings(
    payload: models.CorsSettings,
    service: StorageService = Depends(get_storage_service),
):
    """Replace the bucket's CORS rules."""
    rules = [rule.to_store() for rule in payload.rules]
    await run_in_threadpool(service.put_cors_rules, rules)
    return models.SuccessResponse()
