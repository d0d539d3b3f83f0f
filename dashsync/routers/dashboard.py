"""Dashboard state + sync API."""
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from dashsync import config
from dashsync.models import AnalysisCreatedNotice, FileUploadedNotice

logger = logging.getLogger("dashsync.api")

dashboard_router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


class RetrySyncRequest(BaseModel):
    maxAttempts: int = Field(default=config.RETRY_MAX_ATTEMPTS, ge=1, le=10)


def _get_provider(request: Request):
    provider = getattr(request.app.state, "dashboard_provider", None)
    if not provider:
        raise HTTPException(status_code=503, detail="Dashboard provider not initialized")
    return provider


def _state_payload(provider) -> dict:
    state = provider.read()
    return {
        **state.model_dump(),
        "loading": state.sync.loading,
        "error": state.sync.lastError,
    }


@dashboard_router.get("/state")
async def get_dashboard_state(request: Request):
    """Current snapshot, recent activity, sync state and upload counter."""
    provider = _get_provider(request)
    return _state_payload(provider)


@dashboard_router.get("/stats/formatted")
async def get_formatted_stats(request: Request):
    """Display-ready stat cards."""
    provider = _get_provider(request)
    cards = provider.formatted_stats()
    return {"items": [card.model_dump() for card in cards]}


@dashboard_router.post("/sync")
async def trigger_sync(request: Request):
    """Force an immediate refresh from the upstream services."""
    provider = _get_provider(request)
    result = await provider.forced_sync()
    return {"status": "ok" if result is not None else "error", **_state_payload(provider)}


@dashboard_router.post("/sync/retry")
async def trigger_sync_with_retry(request: Request, body: RetrySyncRequest):
    provider = _get_provider(request)
    result = await provider.sync_with_retry(body.maxAttempts)
    return {"status": "ok" if result is not None else "error", **_state_payload(provider)}


@dashboard_router.post("/upload-counter/reset")
async def reset_upload_counter(request: Request):
    provider = _get_provider(request)
    provider.reset_upload_counter()
    return {"status": "ok", "uploadCount": 0}


@dashboard_router.post("/notifications/file-uploaded")
async def notify_file_uploaded(request: Request, body: FileUploadedNotice):
    """Record an upload and start the post-upload refresh cascade."""
    provider = _get_provider(request)
    upload_count = await provider.notify_file_uploaded(body.model_dump())
    return {"status": "ok", "uploadCount": upload_count}


@dashboard_router.post("/notifications/analysis-created")
async def notify_analysis_created(request: Request, body: AnalysisCreatedNotice):
    provider = _get_provider(request)
    await provider.notify_analysis_created(body.model_dump())
    return {"status": "ok"}
