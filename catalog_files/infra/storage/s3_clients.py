"""S3 client registry.

Clients are cached per backend identity, i.e. the effective options of a
bucket after per-bucket overrides are merged over the defaults. Buckets that
resolve to the same options share one client.

Dependencies:
    - boto3
    - botocore
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, fields, replace
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Callable, Mapping

import boto3
from botocore.config import Config

from catalog_files.infra.observability.metrics import CLIENTS_CREATED
from catalog_files.infra.storage.location import StorageLocation, parse_location

if TYPE_CHECKING:
    from catalog_files.common.config import Settings

logger = logging.getLogger("storage")

S3_SCHEMES: frozenset[str] = frozenset({"s3", "s3a", "s3n"})


def is_s3_scheme(scheme: str | None) -> bool:
    return bool(scheme) and scheme.lower() in S3_SCHEMES


@dataclass(frozen=True, slots=True)
class S3BucketOptions:
    """Connection options for one bucket; ``None`` means "use the default"."""

    endpoint_url: str | None = None
    region: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None
    session_token: str | None = None
    path_style_access: bool | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "S3BucketOptions":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown S3 bucket option(s): {', '.join(unknown)}")
        return cls(**dict(data))

    def merged_over(self, defaults: "S3BucketOptions") -> "S3BucketOptions":
        overrides = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }
        return replace(defaults, **overrides)

    def __repr__(self) -> str:
        secret = "***" if self.secret_access_key else None
        token = "***" if self.session_token else None
        return (
            f"S3BucketOptions(endpoint_url={self.endpoint_url!r}, region={self.region!r}, "
            f"access_key_id={self.access_key_id!r}, secret_access_key={secret!r}, "
            f"session_token={token!r}, path_style_access={self.path_style_access!r})"
        )


@dataclass(frozen=True, slots=True)
class S3Options:
    """Default options, per-bucket overrides and the throttling backoff."""

    defaults: S3BucketOptions = field(default_factory=S3BucketOptions)
    buckets: Mapping[str, S3BucketOptions] = field(default_factory=dict)
    retry_after: timedelta | None = None

    def effective_options(self, bucket: str) -> S3BucketOptions:
        override = self.buckets.get(bucket)
        if override is None:
            return self.defaults
        return override.merged_over(self.defaults)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "S3Options":
        defaults = S3BucketOptions(
            endpoint_url=settings.S3_ENDPOINT_URL,
            region=settings.S3_REGION,
            access_key_id=settings.S3_ACCESS_KEY_ID,
            secret_access_key=settings.S3_SECRET_ACCESS_KEY,
            session_token=settings.S3_SESSION_TOKEN,
            path_style_access=settings.S3_PATH_STYLE_ACCESS,
        )
        buckets = {
            name: S3BucketOptions.from_mapping(raw)
            for name, raw in settings.S3_BUCKET_OPTIONS.items()
        }
        retry_after = (
            timedelta(seconds=settings.S3_RETRY_AFTER_SECONDS)
            if settings.S3_RETRY_AFTER_SECONDS
            else None
        )
        return cls(defaults=defaults, buckets=buckets, retry_after=retry_after)


def build_s3_client(options: S3BucketOptions) -> Any:
    """Create a boto3 S3 client for ``options``.

    botocore's own retries are disabled: retry decisions belong to the caller.
    """
    addressing_style = "path" if options.path_style_access else "auto"
    config = Config(
        signature_version="s3v4",
        s3={"addressing_style": addressing_style},
        retries={"mode": "standard", "max_attempts": 1},
    )

    client_kwargs: dict[str, Any] = {"config": config}
    if options.region:
        client_kwargs["region_name"] = options.region
    if options.endpoint_url:
        client_kwargs["endpoint_url"] = options.endpoint_url
    if options.access_key_id:
        client_kwargs["aws_access_key_id"] = options.access_key_id
    if options.secret_access_key:
        client_kwargs["aws_secret_access_key"] = options.secret_access_key
    if options.session_token:
        client_kwargs["aws_session_token"] = options.session_token

    # boto3 sessions are not thread-safe; each client gets its own.
    session = boto3.session.Session()
    return session.client("s3", **client_kwargs)


class S3ClientSupplier:
    """Thread-safe cache of S3 clients keyed by backend identity.

    Clients are built lazily on first use. Concurrent first use of one
    identity builds a single client; every caller receives it. Cached clients
    live until :meth:`close`.
    """

    def __init__(
        self,
        options: S3Options | None = None,
        *,
        client_factory: Callable[[S3BucketOptions], Any] = build_s3_client,
    ) -> None:
        self._options = options or S3Options()
        self._client_factory = client_factory
        self._clients: dict[S3BucketOptions, Any] = {}
        self._locks: dict[S3BucketOptions, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def options(self) -> S3Options:
        return self._options

    @property
    def retry_after(self) -> timedelta | None:
        return self._options.retry_after

    def identity_for(self, target: "StorageLocation | str") -> S3BucketOptions:
        """Resolve the backend identity of a location or a bare bucket name."""
        if isinstance(target, StorageLocation) or "://" in str(target):
            bucket = parse_location(target).required_authority()
        else:
            bucket = str(target)
        return self._options.effective_options(bucket)

    def client_for(self, target: "StorageLocation | str") -> Any:
        identity = self.identity_for(target)
        client = self._clients.get(identity)
        if client is not None:
            return client

        with self._lock_for(identity):
            client = self._clients.get(identity)
            if client is None:
                client = self._client_factory(identity)
                self._clients[identity] = client
                CLIENTS_CREATED.labels("s3").inc()
                logger.info(
                    "s3_client_created endpoint=%s region=%s path_style=%s",
                    identity.endpoint_url or "-",
                    identity.region or "-",
                    bool(identity.path_style_access),
                    extra={
                        "extra": {
                            "endpoint": identity.endpoint_url,
                            "region": identity.region,
                            "cached_clients": len(self._clients),
                        }
                    },
                )
        return client

    def _lock_for(self, identity: S3BucketOptions) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(identity)
            if lock is None:
                lock = self._locks[identity] = threading.Lock()
            return lock

    def close(self) -> None:
        """Close every cached client.

        Waits for clients that are being built, so none outlives the call.
        """
        with self._locks_guard:
            locks = list(self._locks.items())
        clients = []
        for identity, lock in locks:
            with lock:
                client = self._clients.pop(identity, None)
            if client is not None:
                clients.append(client)
        for client in clients:
            close = getattr(client, "close", None)
            if close is not None:
                close()
        if clients:
            logger.info("s3_clients_closed count=%s", len(clients))
