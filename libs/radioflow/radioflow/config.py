"""Configuration management using pydantic-settings."""

from pathlib import Path
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from radioflow.exceptions import ConfigurationError

_ENV_FILES = (".env", "../.env", "../../.env")

_REPO_ROOT = Path(__file__).resolve().parents[3]


def _resolve_repo_path(value: str) -> str:
    raw = str(value or "").strip()
    if not raw:
        return raw
    p = Path(raw)
    if p.is_absolute():
        return str(p)
    return str((_REPO_ROOT / p).resolve())


class StorageSettings(BaseSettings):
    """Durable object storage (tracks, manifests, lock records)."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    backend: str = "local"  # "local" | "s3"
    local_dir: str = "./data/storage"

    s3_endpoint: str = "http://localhost:9000"
    s3_access_key: str = "minioadmin"
    s3_secret_key: str = "minioadmin"
    s3_bucket_name: str = "radioflow"

    # Client-facing base URL of the published objects (CDN pull zone).
    public_base_url: str = "http://localhost:9000/radioflow"

    @model_validator(mode="after")
    def _validate_backend(self) -> "StorageSettings":
        backend = str(self.backend or "").strip().lower()
        if backend not in {"local", "s3"}:
            raise ConfigurationError(f"Unknown STORAGE_BACKEND: {self.backend!r} (expected: local/s3)")
        self.backend = backend
        self.local_dir = _resolve_repo_path(self.local_dir)
        return self


class AudioConfig(BaseSettings):
    """Audio mixing configuration."""

    model_config = SettingsConfigDict(
        env_prefix="AUDIO_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    ffmpeg_bin: str = "ffmpeg"
    timeout_s: float = Field(default=300.0, gt=0)

    # Publishable output encoding
    sample_rate: int = Field(default=44100, ge=8000)
    channels: int = Field(default=2, ge=1, le=2)
    bitrate: str = "128k"

    background_volume: float = Field(default=0.25, ge=0, le=1)

    # Silent placeholder durations for missing system assets
    silence_background_s: float = Field(default=30.0, gt=0)
    silence_question_s: float = Field(default=5.0, gt=0)
    silence_default_s: float = Field(default=3.0, gt=0)


class FetchConfig(BaseSettings):
    """Remote asset download configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FETCH_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    timeout_s: float = Field(default=30.0, gt=0)
    max_attempts: int = Field(default=3, ge=1)
    concurrency: int = Field(default=4, ge=1)


class LockConfig(BaseSettings):
    """Generation lock timings."""

    model_config = SettingsConfigDict(
        env_prefix="LOCK_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    timeout_s: float = Field(default=5 * 60.0, gt=0)
    poll_interval_s: float = Field(default=2.0, gt=0)
    max_wait_s: float = Field(default=8 * 60.0, gt=0)


class AssetConfig(BaseSettings):
    """System asset (jingles, prompts, backgrounds) locations."""

    model_config = SettingsConfigDict(
        env_prefix="ASSETS_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = "https://little-microphones.b-cdn.net/audio"
    extension: str = "mp3"


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=_ENV_FILES,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"
    console: bool = True
    file: str | None = None
    max_bytes: int = Field(default=10 * 1024 * 1024, ge=0)
    backup_count: int = Field(default=5, ge=0)


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILES, env_file_encoding="utf-8", extra="ignore"
    )

    data_dir: str = "./data"
    scratch_dir: str = "./data/scratch"
    log_dir: str = "./logs"

    manifest_version: str = "5.3.0"

    storage: StorageSettings = StorageSettings()
    audio: AudioConfig = AudioConfig()
    fetch: FetchConfig = FetchConfig()
    lock: LockConfig = LockConfig()
    assets: AssetConfig = AssetConfig()

    # Logging
    logging: LoggingSettings = LoggingSettings()

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        # Apps run from their own directories; keep paths stable.
        self.data_dir = _resolve_repo_path(self.data_dir)
        self.scratch_dir = _resolve_repo_path(self.scratch_dir)
        self.log_dir = _resolve_repo_path(self.log_dir)
        for p in (self.data_dir, self.scratch_dir, self.log_dir):
            Path(p).mkdir(parents=True, exist_ok=True)
        return self
