from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class IdentityPayload(BaseModel):
    program_type: str
    program_identity: str
    variant: str
    language: str = ""


class GenerateProgramRequest(BaseModel):
    identity: IdentityPayload
    segments: list[dict[str, Any]] | None = None
    recordings: list[dict[str, Any] | str] = Field(default_factory=list)


class GenerateProgramResponse(BaseModel):
    success: bool = True
    url: str
    manifest: dict[str, Any]


class LockContentionResponse(BaseModel):
    success: bool = False
    status: str = "in_progress"
    retry_after_s: float | None = None
    lock: dict[str, Any] | None = None


class ProcessingFailedResponse(BaseModel):
    success: bool = False
    error: str = "processing_failed"
    stage: str
    error_code: str
    error_id: str


class GenerationStatusResponse(BaseModel):
    status: str  # "ready" | "generating" | "expired"
    lock: dict[str, Any] | None = None
    estimated_remaining_s: float | None = None


class ManifestViewRequest(BaseModel):
    program_type: str
    program_identity: str
    language: str = ""
    recordings: list[str] | None = None
