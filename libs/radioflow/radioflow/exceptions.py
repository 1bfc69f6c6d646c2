"""RadioFlow exception hierarchy."""

from __future__ import annotations

from typing import TYPE_CHECKING

from radioflow.error_codes import ErrorCode

if TYPE_CHECKING:
    from radioflow.models.lock import LockRecord


class RadioFlowError(Exception):
    """Base error for RadioFlow."""

    error_code: ErrorCode = ErrorCode.UNKNOWN


class ConfigurationError(RadioFlowError):
    """Raised when configuration or inputs are invalid."""

    error_code = ErrorCode.INVALID_INPUT


class NoInputError(RadioFlowError):
    """Raised when there is nothing to build a program from."""

    error_code = ErrorCode.NO_INPUT


class FetchFailedError(RadioFlowError):
    """Raised when a required (non-substitutable) asset cannot be downloaded."""

    error_code = ErrorCode.FETCH_FAILED

    def __init__(self, url: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(f"{url}: {message}")
        self.url = url
        self.message = message
        self.status_code = status_code


class MixingFailedError(RadioFlowError):
    """Raised when the external mixing tool fails."""

    error_code = ErrorCode.MIXING_FAILED

    def __init__(self, operation: str, message: str, *, diagnostic: str = "") -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.message = message
        self.diagnostic = diagnostic


class SegmentOrderError(MixingFailedError):
    """Raised when rendered segments do not line up with the plan order."""

    def __init__(self, message: str) -> None:
        super().__init__("assemble_final", message)


class PublishFailedError(RadioFlowError):
    """Raised when the rendered track cannot be uploaded."""

    error_code = ErrorCode.PUBLISH_FAILED

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key
        self.message = message


class LockContentionError(RadioFlowError):
    """Raised when another generation holds the lock for the same key."""

    error_code = ErrorCode.LOCK_CONTENTION

    def __init__(self, key: str, record: LockRecord | None = None, *, retry_after_s: float | None = None) -> None:
        super().__init__(f"generation in progress for {key}")
        self.key = key
        self.record = record
        self.retry_after_s = retry_after_s


class LockUnavailableError(RadioFlowError):
    """Raised when the lock record cannot be read or written."""

    error_code = ErrorCode.LOCK_UNAVAILABLE

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"lock storage failed for {key}: {message}")
        self.key = key
        self.message = message


class StageExecutionError(RadioFlowError):
    """Raised when a pipeline stage fails."""

    def __init__(
        self,
        stage: str,
        message: str,
        *,
        lock_key: str | None = None,
        error_code: ErrorCode | str | None = None,
    ) -> None:
        prefix = f"{stage}"
        if lock_key:
            prefix = f"{prefix} (key={lock_key})"
        super().__init__(f"{prefix}: {message}")
        self.stage = stage
        self.lock_key = lock_key
        self.message = message
        self.error_code = ErrorCode(error_code) if error_code is not None else ErrorCode.UNKNOWN
