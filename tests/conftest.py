from __future__ import annotations

from datetime import datetime, timezone

import pytest

from catalog_files.common.config import get_settings
from catalog_files.infra.storage import S3ClientSupplier, S3ObjectIO, S3Options
from tests.services.mock_storage import MockS3Client

FIXED_NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()  # type: ignore[attr-defined]
    yield
    get_settings.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture()
def clock():
    return lambda: FIXED_NOW


@pytest.fixture()
def mock_s3():
    return MockS3Client()


@pytest.fixture()
def s3_options():
    return S3Options()


@pytest.fixture()
def client_supplier(mock_s3, s3_options):
    return S3ClientSupplier(s3_options, client_factory=lambda options: mock_s3)


@pytest.fixture()
def object_io(client_supplier, clock):
    return S3ObjectIO(client_supplier, clock=clock)
