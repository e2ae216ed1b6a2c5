"""Object storage access layer.

This package provides a scheme-polymorphic abstraction over object storage
backends (S3, MinIO and other S3-compatible services), with cached client
handles, a small failure taxonomy and commit-once write sinks.
"""

from .client import ClientSupplier, LocationLike, ObjectIO, WritableSink
from .errors import (
    BackendThrottledError,
    BatchDeleteError,
    FailureKind,
    InvalidLocationError,
    NonRetryableError,
    ObjectIOError,
    ObjectIOFailure,
)
from .location import StorageLocation, key_for, parse_location
from .router import ObjectIORouter
from .s3_clients import S3_SCHEMES, S3BucketOptions, S3ClientSupplier, S3Options
from .s3_object_io import S3ObjectIO
from .sink import PendingWrite, SinkState

__all__ = [
    "BackendThrottledError",
    "BatchDeleteError",
    "ClientSupplier",
    "FailureKind",
    "InvalidLocationError",
    "LocationLike",
    "NonRetryableError",
    "ObjectIO",
    "ObjectIOError",
    "ObjectIOFailure",
    "ObjectIORouter",
    "PendingWrite",
    "S3BucketOptions",
    "S3ClientSupplier",
    "S3ObjectIO",
    "S3Options",
    "S3_SCHEMES",
    "SinkState",
    "StorageLocation",
    "WritableSink",
    "key_for",
    "parse_location",
]
