"""Generation lock record."""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_iso(value: object) -> datetime | None:
    text = str(value or "").strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _format_iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def new_request_id(now: datetime | None = None) -> str:
    now = now or utcnow()
    return f"gen_{int(now.timestamp() * 1000)}_{secrets.token_hex(4)}"


@dataclass
class LockRecord:
    key: str
    created_at: datetime
    status: str = "generating"
    recording_snapshot: list[str] | None = field(default_factory=list)
    request_id: str = ""
    recording_count: int = 0

    def age_s(self, now: datetime) -> float:
        return (now - self.created_at).total_seconds()

    def is_expired(self, now: datetime, timeout_s: float) -> bool:
        return self.age_s(now) > float(timeout_s)

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "created_at": _format_iso(self.created_at),
            "status": self.status,
            "recording_snapshot": list(self.recording_snapshot or []),
            "request_id": self.request_id,
            "recording_count": int(self.recording_count),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LockRecord":
        """Parse a stored record; raises ValueError when it is malformed."""
        if not isinstance(data, dict):
            raise ValueError("lock record must be an object")
        created_at = _parse_iso(data.get("created_at", data.get("createdAt")))
        if created_at is None:
            raise ValueError("lock record has no valid created_at")
        snapshot_raw = data.get("recording_snapshot", data.get("recordingSnapshot"))
        snapshot = [str(x) for x in snapshot_raw] if isinstance(snapshot_raw, list) else None
        count_raw = data.get("recording_count", data.get("recordingCount"))
        try:
            count = int(count_raw) if count_raw is not None else len(snapshot or [])
        except (TypeError, ValueError):
            count = len(snapshot or [])
        return cls(
            key=str(data.get("key") or data.get("lockKey") or ""),
            created_at=created_at,
            status=str(data.get("status") or "generating"),
            recording_snapshot=snapshot,
            request_id=str(data.get("request_id") or data.get("requestId") or ""),
            recording_count=count,
        )
