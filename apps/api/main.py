"""RadioFlow API"""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from radioflow.config import Settings
from radioflow.providers.mixing import get_mixing_engine
from radioflow.storage import get_object_store
from radioflow.utils.logging_setup import setup_logging
from routes.health import router as health_router
from routes.programs import router as programs_router

settings = Settings()
setup_logging(settings)
logger = logging.getLogger("radioflow.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.settings = settings
    app.state.store = get_object_store(settings)
    app.state.mixer = get_mixing_engine(settings)
    app.state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.fetch.timeout_s),
        follow_redirects=True,
    )
    logger.info(
        "API starting (storage=%s, ffmpeg=%s)",
        settings.storage.backend,
        app.state.mixer.ffmpeg_bin,
    )
    try:
        yield
    finally:
        client: httpx.AsyncClient | None = getattr(app.state, "http_client", None)
        if client is not None:
            await client.aclose()


app = FastAPI(
    title="RadioFlow API",
    description="Radio program generation API",
    version="0.1.0",
    lifespan=lifespan,
)


app.include_router(programs_router)
app.include_router(health_router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}
