"""Advisory generation lock stored as a JSON object next to the program.

The lock is a mutex by convention only: whoever manages to create the lock
object owns generation for that key until it deletes the object or the
record grows older than ``timeout_s``, at which point any caller may remove
it. When the store supports conditional creates, two simultaneous acquirers
cannot both win; otherwise acquisition is read-then-write and a narrow race
remains.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from radioflow.config import Settings
from radioflow.exceptions import LockUnavailableError
from radioflow.models.identity import LockKey, ProgramIdentity
from radioflow.models.lock import LockRecord, new_request_id, utcnow
from radioflow.models.segment import Recording, url_basename
from radioflow.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)

STATUS_READY = "ready"
STATUS_GENERATING = "generating"
STATUS_EXPIRED = "expired"


@dataclass
class GenerationStatus:
    state: str
    record: LockRecord | None = None
    estimated_remaining_s: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.state,
            "lock": self.record.to_dict() if self.record else None,
            "estimated_remaining_s": self.estimated_remaining_s,
        }


def _as_lock_key(key: LockKey | ProgramIdentity | str) -> LockKey:
    if isinstance(key, ProgramIdentity):
        return key.lock_key
    return LockKey.parse(key)


def _names(recordings: Iterable[Recording | dict[str, Any] | str]) -> list[str]:
    out: list[str] = []
    for item in recordings:
        if isinstance(item, Recording):
            out.append(item.filename)
        elif isinstance(item, dict):
            out.append(Recording.from_dict(item).filename)
        else:
            text = str(item)
            out.append(url_basename(text) if "/" in text else text)
    return out


class GenerationLock:
    def __init__(
        self,
        store: ObjectStore,
        *,
        timeout_s: float = 300.0,
        poll_interval_s: float = 2.0,
        max_wait_s: float = 480.0,
        now: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.store = store
        self.timeout_s = float(timeout_s)
        self.poll_interval_s = float(poll_interval_s)
        self.max_wait_s = float(max_wait_s)
        self._now = now
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings, store: ObjectStore, **kwargs: Any) -> "GenerationLock":
        return cls(
            store,
            timeout_s=settings.lock.timeout_s,
            poll_interval_s=settings.lock.poll_interval_s,
            max_wait_s=settings.lock.max_wait_s,
            **kwargs,
        )

    async def _read(self, lock_key: LockKey) -> tuple[bool, LockRecord | None]:
        """Return ``(exists, record)``; a malformed record exists but reads as None."""
        raw = await self.store.get(lock_key.object_key)
        if raw is None:
            return False, None
        try:
            return True, LockRecord.from_dict(json.loads(raw.decode("utf-8")))
        except (UnicodeDecodeError, ValueError) as exc:
            logger.warning("malformed lock record (key=%s): %s", lock_key, exc)
            return True, None

    async def acquire(
        self,
        key: LockKey | ProgramIdentity | str,
        snapshot: Iterable[Recording | dict[str, Any] | str] = (),
    ) -> bool:
        """Take the lock; False when another caller holds it.

        Raises LockUnavailableError when the lock record cannot be read,
        cleared or written. The lock is advisory, so callers may carry on
        without it.
        """
        lock_key = _as_lock_key(key)
        names = sorted(_names(snapshot))

        # One retry after clearing an expired or malformed record.
        for _ in range(2):
            try:
                exists, existing = await self._read(lock_key)
            except Exception as exc:
                logger.warning("lock read failed (key=%s): %s", lock_key, exc)
                raise LockUnavailableError(str(lock_key), f"read failed: {exc}") from exc

            if exists:
                now = self._now()
                if existing is not None and not existing.is_expired(now, self.timeout_s):
                    logger.info(
                        "lock held (key=%s, request_id=%s, age_s=%.1f)",
                        lock_key,
                        existing.request_id,
                        existing.age_s(now),
                    )
                    return False
                logger.warning(
                    "removing stale lock (key=%s, request_id=%s)",
                    lock_key,
                    existing.request_id if existing else None,
                )
                try:
                    await self.store.delete(lock_key.object_key)
                except Exception as exc:
                    logger.warning("stale lock delete failed (key=%s): %s", lock_key, exc)
                    raise LockUnavailableError(str(lock_key), f"delete failed: {exc}") from exc
                continue

            now = self._now()
            record = LockRecord(
                key=str(lock_key),
                created_at=now,
                status=STATUS_GENERATING,
                recording_snapshot=names,
                request_id=new_request_id(now),
                recording_count=len(names),
            )
            body = json.dumps(record.to_dict(), ensure_ascii=False).encode("utf-8")
            try:
                if self.store.supports_conditional_put:
                    created = await self.store.put_if_absent(
                        lock_key.object_key, body, content_type="application/json"
                    )
                else:
                    await self.store.put(lock_key.object_key, body, content_type="application/json")
                    created = True
            except Exception as exc:
                logger.warning("lock write failed (key=%s): %s", lock_key, exc)
                raise LockUnavailableError(str(lock_key), f"write failed: {exc}") from exc

            if created:
                logger.info(
                    "lock acquired (key=%s, request_id=%s, recordings=%d)",
                    lock_key,
                    record.request_id,
                    record.recording_count,
                )
            else:
                logger.info("lock acquire lost race (key=%s)", lock_key)
            return created

        return False

    async def release(self, key: LockKey | ProgramIdentity | str) -> None:
        lock_key = _as_lock_key(key)
        try:
            await self.store.delete(lock_key.object_key)
        except Exception as exc:
            logger.warning("lock release failed (key=%s): %s", lock_key, exc)
            return
        logger.info("lock released (key=%s)", lock_key)

    async def check_status(self, key: LockKey | ProgramIdentity | str) -> LockRecord | None:
        lock_key = _as_lock_key(key)
        try:
            _, record = await self._read(lock_key)
        except Exception as exc:
            logger.warning("lock status read failed (key=%s): %s", lock_key, exc)
            return None
        return record

    @staticmethod
    def has_snapshot_changed(
        current_recordings: Iterable[Recording | dict[str, Any] | str],
        lock_record: LockRecord | None,
        predicate: Callable[[str], bool] | None = None,
    ) -> bool:
        if lock_record is None or lock_record.recording_snapshot is None:
            return True
        current = _names(current_recordings)
        if predicate is not None:
            current = [name for name in current if predicate(name)]
        return sorted(current) != sorted(lock_record.recording_snapshot)

    async def generation_status(self, key: LockKey | ProgramIdentity | str) -> GenerationStatus:
        record = await self.check_status(key)
        if record is None:
            return GenerationStatus(STATUS_READY)
        now = self._now()
        if record.is_expired(now, self.timeout_s):
            return GenerationStatus(STATUS_EXPIRED, record, 0.0)
        remaining = max(0.0, self.timeout_s - record.age_s(now))
        return GenerationStatus(STATUS_GENERATING, record, remaining)

    async def wait_for_release(
        self,
        key: LockKey | ProgramIdentity | str,
        max_wait_s: float | None = None,
    ) -> bool:
        """Poll until the lock is gone or expired; False when the wait times out."""
        lock_key = _as_lock_key(key)
        budget = self.max_wait_s if max_wait_s is None else float(max_wait_s)
        waited = 0.0
        while True:
            record = await self.check_status(lock_key)
            if record is None:
                return True
            if record.is_expired(self._now(), self.timeout_s):
                logger.info("lock expired while waiting (key=%s)", lock_key)
                await self.release(lock_key)
                return True
            if waited >= budget:
                logger.info("lock wait timed out (key=%s, waited_s=%.1f)", lock_key, waited)
                return False
            await self._sleep(self.poll_interval_s)
            waited += self.poll_interval_s
