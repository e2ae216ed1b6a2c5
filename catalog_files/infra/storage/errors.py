"""Failure taxonomy for object storage operations.

Every failure that crosses the object IO boundary derives from
:class:`ObjectIOError` and carries a :class:`FailureKind`, so callers can
branch on ``exc.kind`` instead of on concrete exception classes.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Mapping


class FailureKind(str, enum.Enum):
    INVALID_LOCATION = "invalid_location"
    THROTTLED = "throttled"
    FATAL = "fatal"
    IO = "io"


class ObjectIOError(RuntimeError):
    """Base class for object storage failures."""

    kind: FailureKind = FailureKind.FATAL

    @property
    def retryable(self) -> bool:
        return self.kind is FailureKind.THROTTLED


class InvalidLocationError(ObjectIOError, ValueError):
    """Raised when a location is malformed or not served by the backend."""

    kind = FailureKind.INVALID_LOCATION


class BackendThrottledError(ObjectIOError):
    """The remote store asked us to slow down.

    ``resume_at`` is the earliest time the caller should try again.
    """

    kind = FailureKind.THROTTLED

    def __init__(self, resume_at: datetime, message: str) -> None:
        super().__init__(message)
        self.resume_at = resume_at
        self.message = message

    def __str__(self) -> str:
        return f"{self.message} (resume at {self.resume_at.isoformat()})"


class NonRetryableError(ObjectIOError):
    """Any remote failure that is not a throttling signal."""

    kind = FailureKind.FATAL

    def __init__(self, message: str, *, transport: bool = False) -> None:
        super().__init__(message)
        self.message = message
        self.transport = transport


class ObjectIOFailure(ObjectIOError):
    """Generic probe failure raised by ``ping``."""

    kind = FailureKind.IO


class BatchDeleteError(ObjectIOError):
    """Collects the failures of a best-effort batch delete.

    ``failures`` maps a bucket (or ``scheme://bucket`` when several backends
    took part) to the error raised for it.
    """

    def __init__(self, failures: Mapping[str, ObjectIOError]) -> None:
        self.failures: dict[str, ObjectIOError] = dict(failures)
        targets = ", ".join(sorted(self.failures))
        super().__init__(
            f"Failed to delete objects in {len(self.failures)} bucket(s): {targets}"
        )

    @property
    def kind(self) -> FailureKind:  # type: ignore[override]
        if self.failures and all(
            isinstance(err, BackendThrottledError) for err in self.failures.values()
        ):
            return FailureKind.THROTTLED
        return FailureKind.FATAL

    @property
    def resume_at(self) -> datetime | None:
        hints = [
            err.resume_at
            for err in self.failures.values()
            if isinstance(err, BackendThrottledError)
        ]
        return max(hints) if hints else None
