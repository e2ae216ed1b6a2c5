"""S3-compatible object IO.

Works with AWS S3, MinIO and other S3-compatible services through boto3.
Locations use the ``s3``, ``s3a`` or ``s3n`` scheme.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, BinaryIO, Callable, Iterable, Iterator

from catalog_files.infra.observability.metrics import LATENCY, OPERATIONS
from catalog_files.infra.storage.classifier import classify
from catalog_files.infra.storage.client import ClientSupplier, LocationLike
from catalog_files.infra.storage.errors import (
    BatchDeleteError,
    InvalidLocationError,
    NonRetryableError,
    ObjectIOError,
    ObjectIOFailure,
)
from catalog_files.infra.storage.location import StorageLocation, key_for, parse_location
from catalog_files.infra.storage.s3_clients import is_s3_scheme
from catalog_files.infra.storage.sink import PendingWrite

logger = logging.getLogger("storage")

BACKEND = "s3"

# S3 accepts at most 1000 keys per DeleteObjects request.
MAX_DELETE_KEYS = 1000


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class S3ObjectIO:
    """Object IO backed by S3.

    All clients come from the injected :class:`ClientSupplier`; this class
    holds no per-call state and is safe to share between threads.
    """

    def __init__(
        self,
        client_supplier: ClientSupplier,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._clients = client_supplier
        self._clock = clock

    @contextmanager
    def _observe(self, operation: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        except ObjectIOError as exc:
            OPERATIONS.labels(BACKEND, operation, exc.kind.value).inc()
            raise
        else:
            OPERATIONS.labels(BACKEND, operation, "ok").inc()
        finally:
            LATENCY.labels(BACKEND, operation).observe(time.perf_counter() - start)

    def _classify(self, exc: BaseException, message: str) -> ObjectIOError:
        return classify(
            exc,
            clock=self._clock,
            retry_after_default=self._clients.retry_after,
            message=message,
        )

    @staticmethod
    def _validated(location: LocationLike | None) -> StorageLocation:
        if location is None:
            raise InvalidLocationError("Invalid location: None")
        parsed = parse_location(location)
        if not is_s3_scheme(parsed.scheme):
            raise InvalidLocationError(f"Invalid S3 scheme: {parsed}")
        parsed.required_authority()
        parsed.required_path()
        return parsed

    def ping(self, location: LocationLike) -> None:
        """Probe the bucket of ``location`` with a HEAD request."""
        with self._observe("ping"):
            parsed = parse_location(location)
            if not is_s3_scheme(parsed.scheme):
                raise InvalidLocationError(f"Invalid S3 scheme: {parsed}")
            bucket = parsed.required_authority()
            try:
                client = self._clients.client_for(bucket)
                client.head_bucket(Bucket=bucket)
            except Exception as exc:
                raise ObjectIOFailure(f"Failed to reach bucket {bucket}: {exc}") from exc

    def read_object(self, location: LocationLike) -> BinaryIO:
        """Open a streaming GET on the object at ``location``."""
        with self._observe("read"):
            parsed = self._validated(location)
            bucket = parsed.required_authority()
            try:
                client = self._clients.client_for(parsed)
                response = client.get_object(Bucket=bucket, Key=key_for(parsed))
            except Exception as exc:
                raise self._classify(exc, f"Failed to read {parsed}") from exc
            return response["Body"]

    def write_object(self, location: LocationLike) -> PendingWrite:
        """Return a sink that stores its buffered content at ``location`` on close."""
        parsed = self._validated(location)
        return PendingWrite(lambda payload: self._put(parsed, payload), name=str(parsed))

    def _put(self, location: StorageLocation, payload: bytes) -> None:
        with self._observe("write"):
            try:
                client = self._clients.client_for(location)
                client.put_object(
                    Bucket=location.required_authority(),
                    Key=key_for(location),
                    Body=payload,
                )
            except Exception as exc:
                raise self._classify(exc, f"Failed to write {location}") from exc

    def delete_objects(self, locations: Iterable[LocationLike]) -> None:
        """Delete ``locations`` with one batch request per bucket.

        Every bucket group is attempted; failures are collected and raised
        together as a :class:`BatchDeleteError` once all groups ran.
        """
        with self._observe("delete"):
            parsed = [self._validated(location) for location in locations]
            if not parsed:
                return

            groups: dict[str, list[str]] = {}
            for location in parsed:
                groups.setdefault(location.required_authority(), []).append(
                    key_for(location)
                )

            failures: dict[str, ObjectIOError] = {}
            for bucket, keys in groups.items():
                try:
                    self._delete_group(bucket, keys)
                except ObjectIOError as exc:
                    failures[bucket] = exc
                    logger.error(
                        "object_delete_failed bucket=%s keys=%s kind=%s error=%s",
                        bucket,
                        len(keys),
                        exc.kind.value,
                        exc,
                        extra={
                            "extra": {
                                "bucket": bucket,
                                "keys": len(keys),
                                "kind": exc.kind.value,
                            }
                        },
                    )
            if failures:
                raise BatchDeleteError(failures)

    def _delete_group(self, bucket: str, keys: list[str]) -> None:
        try:
            client = self._clients.client_for(bucket)
        except Exception as exc:
            raise self._classify(exc, f"Failed to delete objects in {bucket}") from exc

        key_errors: list[dict[str, Any]] = []
        for start in range(0, len(keys), MAX_DELETE_KEYS):
            chunk = keys[start : start + MAX_DELETE_KEYS]
            try:
                response = client.delete_objects(
                    Bucket=bucket,
                    Delete={"Objects": [{"Key": key} for key in chunk], "Quiet": True},
                )
            except Exception as exc:
                raise self._classify(
                    exc, f"Failed to delete objects in {bucket}"
                ) from exc
            key_errors.extend((response or {}).get("Errors") or [])

        if key_errors:
            details = ", ".join(
                f"{err.get('Key')}={err.get('Code')}" for err in key_errors[:10]
            )
            raise NonRetryableError(
                f"Failed to delete {len(key_errors)} object(s) in {bucket}: {details}"
            )
