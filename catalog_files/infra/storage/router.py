"""Dispatch object IO calls to the backend family that serves a scheme."""

from __future__ import annotations

from typing import BinaryIO, Iterable

from catalog_files.infra.storage.client import LocationLike, ObjectIO, WritableSink
from catalog_files.infra.storage.errors import (
    BatchDeleteError,
    InvalidLocationError,
    ObjectIOError,
)
from catalog_files.infra.storage.location import StorageLocation, key_for, parse_location


class ObjectIORouter:
    """Implements :class:`ObjectIO` by delegating on the location scheme."""

    def __init__(self) -> None:
        self._backends: dict[str, ObjectIO] = {}

    def register(self, schemes: Iterable[str], object_io: ObjectIO) -> "ObjectIORouter":
        for scheme in schemes:
            self._backends[scheme.lower()] = object_io
        return self

    def supported_schemes(self) -> list[str]:
        return sorted(self._backends)

    def _route(self, location: LocationLike) -> tuple[StorageLocation, ObjectIO]:
        parsed = parse_location(location)
        backend = self._backends.get(parsed.scheme)
        if backend is None:
            raise InvalidLocationError(f"Unsupported storage scheme: {parsed}")
        return parsed, backend

    def ping(self, location: LocationLike) -> None:
        parsed, backend = self._route(location)
        backend.ping(parsed)

    def read_object(self, location: LocationLike) -> BinaryIO:
        parsed, backend = self._route(location)
        return backend.read_object(parsed)

    def write_object(self, location: LocationLike) -> WritableSink:
        parsed, backend = self._route(location)
        return backend.write_object(parsed)

    def delete_objects(self, locations: Iterable[LocationLike]) -> None:
        """Group ``locations`` per backend and delete each group.

        Every location is validated before any backend is called. All backends
        are attempted; failures of several backends are merged into one
        :class:`BatchDeleteError`, keyed ``scheme://bucket``.
        """
        groups: dict[int, tuple[ObjectIO, list[StorageLocation]]] = {}
        for location in locations:
            parsed, backend = self._route(location)
            parsed.required_authority()
            key_for(parsed)
            groups.setdefault(id(backend), (backend, []))[1].append(parsed)

        if len(groups) == 1:
            backend, members = next(iter(groups.values()))
            backend.delete_objects(members)
            return

        failures: dict[str, ObjectIOError] = {}
        for backend, members in groups.values():
            try:
                backend.delete_objects(members)
            except BatchDeleteError as exc:
                scheme = members[0].scheme
                for bucket, error in exc.failures.items():
                    failures[f"{scheme}://{bucket}"] = error
            except InvalidLocationError:
                raise
            except ObjectIOError as exc:
                failures[f"{members[0].scheme}://"] = exc
        if failures:
            raise BatchDeleteError(failures)
