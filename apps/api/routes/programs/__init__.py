"""Program generation API routes."""

from __future__ import annotations

from fastapi import APIRouter

from .generate import router as generate_router
from .status import router as status_router

router = APIRouter()
router.include_router(generate_router, prefix="/api/programs", tags=["programs"])
router.include_router(status_router, prefix="/api/programs", tags=["programs"])

__all__ = ["router"]
