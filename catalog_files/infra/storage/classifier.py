"""Map remote failures onto the object IO failure taxonomy.

This module is the only place that decides whether a failure is retryable.
Decisions use the structured error code and HTTP status only, never the
message text.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable

from botocore.exceptions import BotoCoreError, ClientError

from catalog_files.infra.storage.errors import (
    BackendThrottledError,
    NonRetryableError,
    ObjectIOError,
)

logger = logging.getLogger("storage")

DEFAULT_RETRY_AFTER = timedelta(seconds=10)

# Error codes the AWS SDKs treat as throttling.
THROTTLING_ERROR_CODES = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "ThrottledException",
        "RequestThrottledException",
        "TooManyRequestsException",
        "ProvisionedThroughputExceededException",
        "TransactionInProgressException",
        "RequestLimitExceeded",
        "BandwidthLimitExceeded",
        "LimitExceededException",
        "RequestThrottled",
        "SlowDown",
        "PriorRequestNotComplete",
        "EC2ThrottledException",
    }
)
THROTTLING_STATUS_CODES = frozenset({429})


def _response(exc: ClientError) -> dict[str, Any]:
    return getattr(exc, "response", None) or {}


def error_code(exc: BaseException) -> str:
    if not isinstance(exc, ClientError):
        return ""
    return str((_response(exc).get("Error") or {}).get("Code") or "")


def status_code(exc: BaseException) -> int | None:
    if not isinstance(exc, ClientError):
        return None
    value = (_response(exc).get("ResponseMetadata") or {}).get("HTTPStatusCode")
    return int(value) if value is not None else None


def is_throttling(exc: BaseException) -> bool:
    return (
        error_code(exc) in THROTTLING_ERROR_CODES
        or status_code(exc) in THROTTLING_STATUS_CODES
    )


def service_retry_after(exc: BaseException) -> timedelta | None:
    """Return the ``Retry-After`` hint of a throttling response, if usable."""
    if not isinstance(exc, ClientError):
        return None
    headers = (_response(exc).get("ResponseMetadata") or {}).get("HTTPHeaders") or {}
    raw = headers.get("retry-after") or headers.get("Retry-After")
    if raw is None:
        return None
    try:
        seconds = float(str(raw).strip())
    except ValueError:
        return None
    if seconds <= 0:
        return None
    return timedelta(seconds=seconds)


def classify(
    exc: BaseException,
    *,
    clock: Callable[[], datetime],
    retry_after_default: timedelta | None = None,
    message: str = "Object store request failed",
) -> ObjectIOError:
    """Translate ``exc`` into a :class:`BackendThrottledError` or :class:`NonRetryableError`.

    The backoff for throttled calls is, in order of preference: the
    service-supplied ``Retry-After`` hint, ``retry_after_default``, then
    :data:`DEFAULT_RETRY_AFTER`. The returned error is chained to ``exc``.
    """
    if isinstance(exc, ObjectIOError):
        return exc

    if is_throttling(exc):
        delay = service_retry_after(exc) or retry_after_default or DEFAULT_RETRY_AFTER
        resume_at = clock() + delay
        logger.warning(
            "object_store_throttled code=%s resume_at=%s",
            error_code(exc) or status_code(exc),
            resume_at.isoformat(),
            extra={
                "extra": {
                    "error_code": error_code(exc),
                    "status": status_code(exc),
                    "retry_after_seconds": delay.total_seconds(),
                }
            },
        )
        classified: ObjectIOError = BackendThrottledError(
            resume_at, f"{message}: throttled"
        )
    else:
        transport = isinstance(exc, BotoCoreError)
        logger.warning(
            "object_store_failed code=%s transport=%s error=%s",
            error_code(exc) or "-",
            transport,
            exc,
            extra={
                "extra": {
                    "error_code": error_code(exc),
                    "status": status_code(exc),
                    "transport": transport,
                }
            },
        )
        classified = NonRetryableError(f"{message}: {exc}", transport=transport)

    classified.__cause__ = exc
    return classified
