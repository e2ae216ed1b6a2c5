"""Storage location parsing.

Locations have the form ``<scheme>://<authority>[/<path>]``. Everything after
the authority is treated as the path: object keys may legitimately contain
``?`` and ``#``, so no query or fragment parsing takes place.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from catalog_files.infra.storage.errors import InvalidLocationError

SCHEME_SEPARATOR = "://"
PATH_SEPARATOR = "/"

_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")


@dataclass(frozen=True, slots=True)
class StorageLocation:
    """Parsed, immutable storage location."""

    scheme: str
    authority: str
    path: str = ""

    def required_authority(self) -> str:
        if not self.authority:
            raise InvalidLocationError(f"Location has no authority: {self}")
        return self.authority

    def required_path(self) -> str:
        if not self.path or self.path == PATH_SEPARATOR:
            raise InvalidLocationError(f"Location has no path: {self}")
        return self.path

    def resolve(self, child: str) -> "StorageLocation":
        """Return the location of ``child`` below this location."""
        if not child:
            return self
        base = self.path.rstrip(PATH_SEPARATOR)
        return StorageLocation(
            scheme=self.scheme,
            authority=self.authority,
            path=f"{base}{PATH_SEPARATOR}{child.lstrip(PATH_SEPARATOR)}",
        )

    def __str__(self) -> str:
        return f"{self.scheme}{SCHEME_SEPARATOR}{self.authority}{self.path}"


def parse_location(raw: "str | StorageLocation | None") -> StorageLocation:
    """Parse ``raw`` into a :class:`StorageLocation`.

    Raises:
        InvalidLocationError: If ``raw`` is empty or lacks a valid scheme.
    """
    if isinstance(raw, StorageLocation):
        return raw
    if raw is None:
        raise InvalidLocationError("Invalid location: None")

    value = str(raw).strip()
    if not value:
        raise InvalidLocationError("Invalid location: empty string")

    scheme, sep, rest = value.partition(SCHEME_SEPARATOR)
    if not sep:
        raise InvalidLocationError(f"Invalid location (missing scheme): {value}")
    if not _SCHEME_PATTERN.match(scheme):
        raise InvalidLocationError(f"Invalid location scheme: {value}")

    authority, slash, path = rest.partition(PATH_SEPARATOR)
    return StorageLocation(
        scheme=scheme.lower(),
        authority=authority,
        path=f"{slash}{path}",
    )


def key_for(location: "StorageLocation | str") -> str:
    """Return the object key for ``location``.

    A single leading separator is removed so keys are always relative;
    ``/a/b`` and ``a/b`` both map to ``a/b``. Plain strings are treated as
    paths.
    """
    if isinstance(location, StorageLocation):
        path = location.required_path()
    else:
        path = location
    return path[1:] if path.startswith(PATH_SEPARATOR) else path
