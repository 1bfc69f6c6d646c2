from __future__ import annotations

import pytest

from radioflow.config import Settings, StorageSettings
from radioflow.models.identity import ProgramIdentity
from radioflow.providers.mixing.fake import RecordingMixingEngine
from radioflow.storage.object_store import LocalObjectStore
from radio_testkit import PUBLIC, AssetServer, FakeClock


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        data_dir=str(tmp_path / "data"),
        scratch_dir=str(tmp_path / "scratch"),
        log_dir=str(tmp_path / "logs"),
        storage=StorageSettings(
            backend="local",
            local_dir=str(tmp_path / "storage"),
            public_base_url=PUBLIC,
        ),
    )


@pytest.fixture()
def store(settings: Settings) -> LocalObjectStore:
    return LocalObjectStore(settings.storage.local_dir, public_base_url=PUBLIC)


@pytest.fixture()
def mixer() -> RecordingMixingEngine:
    return RecordingMixingEngine()


@pytest.fixture()
def identity() -> ProgramIdentity:
    return ProgramIdentity("spookyland", "32", "kids", "en")


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def asset_server() -> AssetServer:
    return AssetServer()
