"""Object IO protocol and collaborator interfaces.

The persistence layer talks to object stores only through :class:`ObjectIO`.
One implementation exists per scheme family; :class:`ObjectIORouter` picks
the right one by scheme.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, BinaryIO, Iterable, Protocol, Union

from catalog_files.infra.storage.location import StorageLocation

LocationLike = Union[str, StorageLocation]


class WritableSink(Protocol):
    """Buffered sink returned by :meth:`ObjectIO.write_object`."""

    @property
    def closed(self) -> bool: ...

    def write(self, data: bytes) -> int: ...

    def close(self) -> None: ...

    def abort(self) -> None: ...


class ObjectIO(Protocol):
    """Protocol defining the operations of an object storage backend.

    Implementations must raise only :class:`~catalog_files.infra.storage.errors.ObjectIOError`
    subclasses from these methods.
    """

    def ping(self, location: LocationLike) -> None:
        """Probe the bucket (or container) of ``location``.

        Raises:
            InvalidLocationError: If the location has no authority.
            ObjectIOFailure: If the probe fails for any remote reason.
        """
        ...

    def read_object(self, location: LocationLike) -> BinaryIO:
        """Open a single-pass stream over the object at ``location``.

        Closing the stream releases the underlying connection.

        Raises:
            InvalidLocationError: If the location is malformed or unsupported.
            BackendThrottledError: If the store throttled the request.
            NonRetryableError: For any other remote failure.
        """
        ...

    def write_object(self, location: LocationLike) -> WritableSink:
        """Return a sink whose content is stored at ``location`` on close.

        Raises:
            InvalidLocationError: If the location is malformed or unsupported.
        """
        ...

    def delete_objects(self, locations: Iterable[LocationLike]) -> None:
        """Delete all ``locations``, issuing one batch request per bucket.

        Raises:
            InvalidLocationError: If any location is malformed or unsupported.
            BatchDeleteError: If one or more bucket groups failed.
        """
        ...


class ClientSupplier(Protocol):
    """Resolves and caches remote client handles."""

    @property
    def retry_after(self) -> timedelta | None:
        """Configured backoff for throttled calls without a service hint."""
        ...

    def client_for(self, target: LocationLike) -> Any:
        ...

    def close(self) -> None:
        ...
