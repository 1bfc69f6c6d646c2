"""S3/MinIO object store implementation."""

from __future__ import annotations

import asyncio
import builtins
import logging
from datetime import datetime, timezone
from typing import Any

from botocore.config import Config
from botocore.exceptions import ClientError

from radioflow.storage.object_store import ObjectStore, _clean_key
from radioflow.storage.s3_pagination import iter_keys

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NoSuchBucket", "NotFound"}
_PRECONDITION_CODES = {"412", "PreconditionFailed", "ConditionalRequestConflict"}

# Standard headers that put_object exposes as named parameters.
_HEADER_PARAMS = {
    "cache-control": "CacheControl",
    "content-type": "ContentType",
    "content-disposition": "ContentDisposition",
    "content-encoding": "ContentEncoding",
    "expires": "Expires",
}


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", "") or "")


def _put_params(content_type: str | None, headers: dict[str, str] | None) -> dict[str, Any]:
    params: dict[str, Any] = {}
    metadata: dict[str, str] = {}
    for name, value in (headers or {}).items():
        param = _HEADER_PARAMS.get(name.lower())
        if param is None:
            metadata[name.lower()] = str(value)
        elif param == "Expires":
            # "Expires: 0" means already expired.
            params[param] = datetime(1970, 1, 1, tzinfo=timezone.utc)
        else:
            params[param] = str(value)
    if content_type:
        params["ContentType"] = content_type
    if metadata:
        params["Metadata"] = metadata
    return params


class S3ObjectStore(ObjectStore):
    """S3/MinIO object store for production."""

    supports_conditional_put = True

    def __init__(
        self,
        endpoint: str,
        access_key: str,
        secret_key: str,
        bucket: str,
        *,
        public_base_url: str = "",
        client: Any | None = None,
    ) -> None:
        super().__init__(public_base_url or f"{endpoint.rstrip('/')}/{bucket}")
        self.endpoint = endpoint.rstrip("/")
        self.access_key = access_key
        self.secret_key = secret_key
        self.bucket = bucket

        self._client: Any | None = client
        self._bucket_ready: bool = False
        self._bucket_lock = asyncio.Lock()

    def _ensure_client(self) -> Any:
        if self._client is not None:
            return self._client

        import boto3

        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint,
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
            config=Config(s3={"addressing_style": "path"}),
        )
        return self._client

    async def _ensure_bucket(self) -> Any:
        client = self._ensure_client()
        if self._bucket_ready:
            return client

        async with self._bucket_lock:
            if self._bucket_ready:
                return client

            def _head_or_create() -> None:
                try:
                    client.head_bucket(Bucket=self.bucket)
                    return
                except ClientError as exc:
                    if _error_code(exc) not in _MISSING_CODES:
                        raise
                client.create_bucket(Bucket=self.bucket)

            try:
                await asyncio.to_thread(_head_or_create)
            except ClientError as exc:
                raise RuntimeError(f"Failed to ensure S3 bucket {self.bucket!r}: {exc}") from exc

            self._bucket_ready = True
            return client

    async def get(self, key: str) -> bytes | None:
        key = _clean_key(key)
        client = await self._ensure_bucket()

        def _get() -> bytes:
            resp = client.get_object(Bucket=self.bucket, Key=key)
            return bytes(resp["Body"].read())

        try:
            return await asyncio.to_thread(_get)
        except ClientError as exc:
            if _error_code(exc) in _MISSING_CODES:
                return None
            raise RuntimeError(f"Failed to read s3 object {key!r}: {exc}") from exc

    async def head(self, key: str) -> dict[str, str] | None:
        key = _clean_key(key)
        client = await self._ensure_bucket()

        def _head() -> dict[str, Any]:
            return dict(client.head_object(Bucket=self.bucket, Key=key))

        try:
            resp = await asyncio.to_thread(_head)
        except ClientError as exc:
            if _error_code(exc) in _MISSING_CODES:
                return None
            raise RuntimeError(f"Failed to head s3 object {key!r}: {exc}") from exc

        out: dict[str, str] = {}
        for header, param in _HEADER_PARAMS.items():
            if resp.get(param) is not None:
                out[header.title()] = str(resp[param])
        for name, value in (resp.get("Metadata") or {}).items():
            out[str(name).title()] = str(value)
        return out

    async def put(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        key = _clean_key(key)
        client = await self._ensure_bucket()
        params = _put_params(content_type, headers)

        def _put() -> None:
            client.put_object(Bucket=self.bucket, Key=key, Body=data, **params)

        try:
            await asyncio.to_thread(_put)
        except ClientError as exc:
            raise RuntimeError(f"Failed to write s3 object {key!r}: {exc}") from exc

    async def put_if_absent(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> bool:
        key = _clean_key(key)
        client = await self._ensure_bucket()
        params = _put_params(content_type, headers)

        def _put() -> None:
            client.put_object(Bucket=self.bucket, Key=key, Body=data, IfNoneMatch="*", **params)

        try:
            await asyncio.to_thread(_put)
        except ClientError as exc:
            if _error_code(exc) in _PRECONDITION_CODES:
                return False
            raise RuntimeError(f"Failed to create s3 object {key!r}: {exc}") from exc
        return True

    async def delete(self, key: str) -> None:
        key = _clean_key(key)
        client = await self._ensure_bucket()

        def _delete() -> None:
            client.delete_object(Bucket=self.bucket, Key=key)

        try:
            await asyncio.to_thread(_delete)
        except ClientError as exc:
            if _error_code(exc) in _MISSING_CODES:
                return
            raise RuntimeError(f"Failed to delete s3 object {key!r}: {exc}") from exc

    async def list(self, prefix: str = "") -> builtins.list[str]:
        client = await self._ensure_bucket()
        prefix = str(prefix or "").lstrip("/")

        def _list() -> builtins.list[str]:
            return sorted(iter_keys(client, bucket=self.bucket, prefix=prefix))

        try:
            return await asyncio.to_thread(_list)
        except ClientError as exc:
            raise RuntimeError(f"Failed to list s3 objects (prefix={prefix!r}): {exc}") from exc
