from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request

from radioflow.exceptions import ConfigurationError
from radioflow.models.identity import ProgramIdentity

from ._deps import service
from .schemas import GenerationStatusResponse, ManifestViewRequest

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/status", response_model=GenerationStatusResponse)
async def program_status(
    request: Request,
    program_type: str,
    program_identity: str,
    variant: str,
    language: str = "",
) -> GenerationStatusResponse:
    try:
        identity = ProgramIdentity(program_type, program_identity, variant, language)
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    status = await service(request).status(identity)
    return GenerationStatusResponse.model_validate(status.to_dict())


@router.post("/manifest")
async def program_manifest(request: Request, payload: ManifestViewRequest) -> dict:
    try:
        return await service(request).manifest_view(
            payload.program_type,
            payload.program_identity,
            payload.language,
            recordings=payload.recordings,
        )
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
