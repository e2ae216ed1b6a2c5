from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
from typing import Callable

from catalog_files.common.config import Settings, get_settings
from catalog_files.infra.storage import (
    S3_SCHEMES,
    ObjectIORouter,
    S3ClientSupplier,
    S3ObjectIO,
    S3Options,
)
from catalog_files.infra.storage.s3_object_io import utcnow

from .async_object_io import AsyncObjectIO


@dataclass
class StorageBundle:
    """Lazily wires settings, the client registry and the object IO router.

    One bundle owns one client registry; :meth:`close` tears it down.
    """

    settings: Settings
    clock: Callable[[], datetime] = utcnow
    _s3_clients: S3ClientSupplier | None = field(default=None, init=False, repr=False)
    _s3_object_io: S3ObjectIO | None = field(default=None, init=False, repr=False)
    _router: ObjectIORouter | None = field(default=None, init=False, repr=False)
    _async: AsyncObjectIO | None = field(default=None, init=False, repr=False)

    def s3_clients(self) -> S3ClientSupplier:
        if self._s3_clients is None:
            self._s3_clients = S3ClientSupplier(S3Options.from_settings(self.settings))
        return self._s3_clients

    def s3_object_io(self) -> S3ObjectIO:
        if self._s3_object_io is None:
            self._s3_object_io = S3ObjectIO(self.s3_clients(), clock=self.clock)
        return self._s3_object_io

    def object_io(self) -> ObjectIORouter:
        if self._router is None:
            self._router = ObjectIORouter().register(S3_SCHEMES, self.s3_object_io())
        return self._router

    def async_object_io(self) -> AsyncObjectIO:
        if self._async is None:
            self._async = AsyncObjectIO(self.object_io())
        return self._async

    def close(self) -> None:
        if self._s3_clients is not None:
            self._s3_clients.close()


@lru_cache(maxsize=1)
def get_storage_bundle() -> StorageBundle:
    return StorageBundle(settings=get_settings())
