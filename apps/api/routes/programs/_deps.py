from __future__ import annotations

from fastapi import HTTPException, Request

from radioflow.config import Settings
from services.program_service import ProgramService


def service(request: Request) -> ProgramService:
    settings: Settings | None = getattr(request.app.state, "settings", None)
    store = getattr(request.app.state, "store", None)
    mixer = getattr(request.app.state, "mixer", None)
    if settings is None or store is None or mixer is None:
        raise HTTPException(status_code=500, detail="program service not initialized")
    return ProgramService(
        settings,
        store,
        mixer,
        http_client=getattr(request.app.state, "http_client", None),
    )
