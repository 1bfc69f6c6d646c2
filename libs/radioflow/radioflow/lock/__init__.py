"""Storage-backed generation lock."""

from radioflow.lock.generation_lock import (
    STATUS_EXPIRED,
    STATUS_GENERATING,
    STATUS_READY,
    GenerationLock,
    GenerationStatus,
)

__all__ = [
    "GenerationLock",
    "GenerationStatus",
    "STATUS_EXPIRED",
    "STATUS_GENERATING",
    "STATUS_READY",
]
