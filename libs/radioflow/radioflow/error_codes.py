"""Canonical error codes surfaced to API callers."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    UNKNOWN = "UNKNOWN"
    INVALID_INPUT = "INVALID_INPUT"
    NO_INPUT = "NO_INPUT"

    FETCH_FAILED = "FETCH_FAILED"
    MIXING_FAILED = "MIXING_FAILED"
    PUBLISH_FAILED = "PUBLISH_FAILED"

    LOCK_CONTENTION = "LOCK_CONTENTION"
    LOCK_UNAVAILABLE = "LOCK_UNAVAILABLE"
