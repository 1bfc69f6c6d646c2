"""Upload finished tracks and manifests."""

from __future__ import annotations

import asyncio
import logging
import secrets
import shutil
import time
from pathlib import Path

from radioflow.exceptions import PublishFailedError
from radioflow.models.identity import ProgramIdentity
from radioflow.models.manifest import Manifest
from radioflow.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS: dict[str, str] = {
    "Cache-Control": "no-cache, no-store, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}

TRACK_CONTENT_TYPE = "audio/mpeg"


def _base36(n: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    out = ""
    while n:
        n, r = divmod(n, 36)
        out = digits[r] + out
    return out or "0"


def cache_busted(url: str) -> str:
    sep = "&" if "?" in url else "?"
    return f"{url}{sep}v={int(time.time() * 1000)}&cb={_base36(secrets.randbits(40))}"


class Publisher:
    def __init__(self, store: ObjectStore) -> None:
        self.store = store

    async def publish(self, track_path: str | Path, identity: ProgramIdentity) -> str:
        """Upload the track to its fixed key and return a cache-busted public URL."""
        key = identity.track_key
        try:
            data = await asyncio.to_thread(Path(track_path).read_bytes)
            await self.store.put(key, data, content_type=TRACK_CONTENT_TYPE, headers=dict(NO_CACHE_HEADERS))
        except Exception as exc:
            logger.exception("track upload failed (key=%s)", key)
            raise PublishFailedError(key, str(exc)) from exc
        url = cache_busted(self.store.public_url(key))
        logger.info("track published (key=%s, bytes=%d)", key, len(data))
        return url

    async def publish_manifest(self, manifest: Manifest, identity: ProgramIdentity) -> bool:
        """Write the manifest beside the track. Failures are logged, never raised."""
        key = identity.manifest_key
        try:
            await self.store.put_json(key, manifest.to_dict(), headers=dict(NO_CACHE_HEADERS))
        except Exception as exc:
            logger.warning("manifest upload failed (key=%s): %s", key, exc)
            return False
        logger.info("manifest published (key=%s, recordings=%d)", key, manifest.recording_count)
        return True

    async def load_manifest(self, identity: ProgramIdentity) -> Manifest | None:
        key = identity.manifest_key
        try:
            data = await self.store.get_json(key)
        except Exception as exc:
            logger.warning("manifest read failed (key=%s): %s", key, exc)
            return None
        if data is None:
            return None
        try:
            return Manifest.from_dict(data)
        except (TypeError, ValueError) as exc:
            logger.warning("malformed manifest (key=%s): %s", key, exc)
            return None

    @staticmethod
    async def cleanup(scratch_dir: str | Path | None) -> None:
        if not scratch_dir:
            return
        path = Path(scratch_dir)
        await asyncio.to_thread(shutil.rmtree, path, ignore_errors=True)
        logger.debug("scratch removed (path=%s)", path)
