"""Object storage backends."""

from radioflow.config import Settings
from radioflow.storage.object_store import LocalObjectStore, ObjectStore
from radioflow.storage.s3_store import S3ObjectStore


def get_object_store(settings: Settings) -> ObjectStore:
    cfg = settings.storage
    if cfg.backend == "s3":
        return S3ObjectStore(
            endpoint=cfg.s3_endpoint,
            access_key=cfg.s3_access_key,
            secret_key=cfg.s3_secret_key,
            bucket=cfg.s3_bucket_name,
            public_base_url=cfg.public_base_url,
        )
    return LocalObjectStore(cfg.local_dir, public_base_url=cfg.public_base_url)


__all__ = ["LocalObjectStore", "ObjectStore", "S3ObjectStore", "get_object_store"]
