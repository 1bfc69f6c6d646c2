from __future__ import annotations

import logging
from uuid import uuid4

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from radioflow.exceptions import (
    ConfigurationError,
    LockContentionError,
    NoInputError,
    StageExecutionError,
)
from radioflow.pipeline.orchestrator import GenerationRequest

from ._deps import service
from .schemas import (
    GenerateProgramRequest,
    GenerateProgramResponse,
    LockContentionResponse,
    ProcessingFailedResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def _processing_failed(stage: str, error_code: str) -> JSONResponse:
    error_id = uuid4().hex
    logger.exception("generate_program failed stage=%s error_code=%s error_id=%s", stage, error_code, error_id)
    body = ProcessingFailedResponse(stage=stage, error_code=error_code, error_id=error_id)
    return JSONResponse(status_code=500, content=body.model_dump())


@router.post(
    "/generate",
    response_model=GenerateProgramResponse,
    responses={409: {"model": LockContentionResponse}, 500: {"model": ProcessingFailedResponse}},
)
async def generate_program(request: Request, payload: GenerateProgramRequest):
    identity = payload.identity
    logger.info(
        "generate_program start program_type=%s program_identity=%s variant=%s language=%s recordings=%d segments=%s",
        identity.program_type,
        identity.program_identity,
        identity.variant,
        identity.language,
        len(payload.recordings),
        None if payload.segments is None else len(payload.segments),
    )
    try:
        gen_request = GenerationRequest.from_dict(payload.model_dump())
        result = await service(request).generate(gen_request)
    except (NoInputError, ConfigurationError) as exc:
        logger.info("generate_program rejected: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except LockContentionError as exc:
        logger.info("generate_program contention key=%s retry_after_s=%s", exc.key, exc.retry_after_s)
        body = LockContentionResponse(
            retry_after_s=exc.retry_after_s,
            lock=exc.record.to_dict() if exc.record is not None else None,
        )
        return JSONResponse(status_code=409, content=body.model_dump())
    except StageExecutionError as exc:
        return _processing_failed(exc.stage, exc.error_code.value)
    except Exception:
        return _processing_failed("unknown", "UNKNOWN")

    logger.info("generate_program ok key=%s url=%s", gen_request.identity.lock_key, result.url)
    return GenerateProgramResponse(**result.to_dict())
