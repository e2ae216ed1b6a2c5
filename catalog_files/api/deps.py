from __future__ import annotations

from catalog_files.app.services.bundle import get_storage_bundle
from catalog_files.infra.storage.client import ObjectIO


def get_object_io() -> ObjectIO:
    return get_storage_bundle().object_io()
