"""Health check routes (object storage)."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from radioflow.config import Settings

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


class StorageHealthResponse(BaseModel):
    status: str  # "ok" | "error"
    backend: str
    latency_ms: int
    error: str | None = None


@router.get("/health/storage", response_model=StorageHealthResponse)
async def storage_health(request: Request) -> StorageHealthResponse:
    settings: Settings | None = getattr(request.app.state, "settings", None)
    store = getattr(request.app.state, "store", None)
    if settings is None or store is None:
        raise HTTPException(status_code=500, detail="storage not initialized")

    started = time.perf_counter()
    try:
        await store.list("health/")
    except Exception as exc:
        latency_ms = int((time.perf_counter() - started) * 1000)
        logger.warning("storage health probe failed backend=%s: %s", settings.storage.backend, exc)
        return StorageHealthResponse(
            status="error",
            backend=settings.storage.backend,
            latency_ms=latency_ms,
            error=type(exc).__name__,
        )
    latency_ms = int((time.perf_counter() - started) * 1000)
    return StorageHealthResponse(status="ok", backend=settings.storage.backend, latency_ms=latency_ms)
