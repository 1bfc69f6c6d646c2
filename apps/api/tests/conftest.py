from __future__ import annotations

import sys
from pathlib import Path

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from radioflow.config import AssetConfig, Settings, StorageSettings
from radioflow.providers.mixing.fake import RecordingMixingEngine
from radioflow.storage.object_store import LocalObjectStore

_API_ROOT = Path(__file__).resolve().parents[1]
if str(_API_ROOT) not in sys.path:
    sys.path.insert(0, str(_API_ROOT))

CDN = "https://cdn.test/audio"


class FakeCDN:
    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}

    def add(self, url: str, body: bytes | None = None) -> str:
        self.files[url] = body if body is not None else url.rsplit("/", 1)[-1].encode()
        return url

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = self.files.get(str(request.url))
        if body is None:
            return httpx.Response(404, request=request)
        return httpx.Response(200, content=body, request=request)


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        data_dir=str(tmp_path / "data"),
        scratch_dir=str(tmp_path / "scratch"),
        log_dir=str(tmp_path / "logs"),
        storage=StorageSettings(
            backend="local",
            local_dir=str(tmp_path / "storage"),
            public_base_url="https://public.test/radio",
        ),
        assets=AssetConfig(base_url=CDN),
    )


@pytest.fixture()
def store(settings: Settings) -> LocalObjectStore:
    return LocalObjectStore(settings.storage.local_dir, public_base_url=settings.storage.public_base_url)


@pytest.fixture()
def mixer() -> RecordingMixingEngine:
    return RecordingMixingEngine()


@pytest.fixture()
def cdn() -> FakeCDN:
    return FakeCDN()


@pytest.fixture()
def app(settings: Settings, store: LocalObjectStore, mixer: RecordingMixingEngine, cdn: FakeCDN) -> FastAPI:
    from routes.health import router as health_router
    from routes.programs import router as programs_router

    test_app = FastAPI()
    test_app.state.settings = settings
    test_app.state.store = store
    test_app.state.mixer = mixer
    test_app.state.http_client = httpx.AsyncClient(transport=httpx.MockTransport(cdn.handler))
    test_app.include_router(programs_router)
    test_app.include_router(health_router)
    return test_app


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    return TestClient(app)

