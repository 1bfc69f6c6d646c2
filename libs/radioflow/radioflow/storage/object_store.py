"""Object store interface and local implementation."""

from __future__ import annotations

import builtins
import json
import os
import secrets
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from radioflow.exceptions import ConfigurationError


def _clean_key(key: str) -> str:
    raw = str(key or "").strip().lstrip("/")
    if not raw:
        raise ConfigurationError("object key is required")
    if any(part in {"", ".", ".."} for part in raw.split("/")):
        raise ConfigurationError(f"invalid object key: {key!r}")
    return raw


class ObjectStore(ABC):
    """Flat key/value object storage (GET / PUT / DELETE / LIST)."""

    # True when put_if_absent is atomic against concurrent writers.
    supports_conditional_put: bool = False

    def __init__(self, public_base_url: str = "") -> None:
        self.public_base_url = str(public_base_url or "").rstrip("/")

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return object bytes, or None when the object does not exist."""

    @abstractmethod
    async def put(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Create or overwrite an object."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete an object; deleting a missing key is not an error."""

    @abstractmethod
    async def list(self, prefix: str = "") -> builtins.list[str]:
        """List keys under a prefix."""

    async def head(self, key: str) -> dict[str, str] | None:
        """Return stored metadata headers, or None when the object does not exist."""
        data = await self.get(key)
        return None if data is None else {}

    async def put_if_absent(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> bool:
        """Create the object only if it does not exist yet.

        The base implementation is read-then-write and therefore racy; stores
        that can do better set ``supports_conditional_put``.
        """
        if await self.get(key) is not None:
            return False
        await self.put(key, data, content_type=content_type, headers=headers)
        return True

    def public_url(self, key: str) -> str:
        key = _clean_key(key)
        if not self.public_base_url:
            return key
        return f"{self.public_base_url}/{key}"

    async def get_json(self, key: str) -> Any | None:
        raw = await self.get(key)
        if raw is None:
            return None
        return json.loads(raw.decode("utf-8"))

    async def put_json(self, key: str, obj: Any, *, headers: dict[str, str] | None = None) -> None:
        raw = json.dumps(obj, ensure_ascii=False, indent=2).encode("utf-8")
        await self.put(key, raw, content_type="application/json", headers=headers)


class LocalObjectStore(ObjectStore):
    """Local filesystem object store for development and tests."""

    supports_conditional_put = True

    _META_DIR = ".meta"

    def __init__(self, base_dir: str, public_base_url: str = "") -> None:
        super().__init__(public_base_url)
        self.base_dir = Path(base_dir)

    def _path(self, key: str) -> Path:
        return self.base_dir / _clean_key(key)

    def _meta_path(self, key: str) -> Path:
        return self.base_dir / self._META_DIR / f"{_clean_key(key)}.json"

    @staticmethod
    def _tmp_path(path: Path) -> Path:
        return path.with_name(f".{path.name}.{os.getpid()}.{secrets.token_hex(4)}.tmp")

    def _write_meta(self, key: str, content_type: str | None, headers: dict[str, str] | None) -> None:
        meta = dict(headers or {})
        if content_type:
            meta["Content-Type"] = content_type
        path = self._meta_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(meta, ensure_ascii=False), encoding="utf-8")

    async def get(self, key: str) -> bytes | None:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None

    async def head(self, key: str) -> dict[str, str] | None:
        if not self._path(key).is_file():
            return None
        try:
            return dict(json.loads(self._meta_path(key).read_text(encoding="utf-8")))
        except FileNotFoundError:
            return {}

    async def put(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._tmp_path(path)
        tmp.write_bytes(data)
        os.replace(tmp, path)
        self._write_meta(key, content_type, headers)

    async def put_if_absent(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> bool:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        # Readers see either no object or the complete one.
        tmp = self._tmp_path(path)
        tmp.write_bytes(data)
        try:
            os.link(tmp, path)
        except FileExistsError:
            return False
        finally:
            tmp.unlink(missing_ok=True)
        self._write_meta(key, content_type, headers)
        return True

    async def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
        self._meta_path(key).unlink(missing_ok=True)

    async def list(self, prefix: str = "") -> builtins.list[str]:
        if not self.base_dir.exists():
            return []
        prefix = str(prefix or "").lstrip("/")
        out: builtins.list[str] = []
        for p in self.base_dir.rglob("*"):
            if not p.is_file() or p.name.endswith(".tmp"):
                continue
            rel = p.relative_to(self.base_dir).as_posix()
            if rel.startswith(f"{self._META_DIR}/"):
                continue
            if rel.startswith(prefix):
                out.append(rel)
        return sorted(out)

