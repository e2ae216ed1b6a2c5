"""Tests for StorageBundle wiring."""

from __future__ import annotations

from unittest.mock import patch

from catalog_files.app.services.bundle import StorageBundle, get_storage_bundle
from catalog_files.common.config import Settings
from catalog_files.infra.storage import ObjectIORouter, S3ObjectIO


def test_builds_components_lazily_and_once():
    bundle = StorageBundle(settings=Settings(S3_REGION="eu-west-1"))

    router = bundle.object_io()

    assert isinstance(router, ObjectIORouter)
    assert router is bundle.object_io()
    assert isinstance(bundle.s3_object_io(), S3ObjectIO)
    assert bundle.s3_clients().options.defaults.region == "eu-west-1"
    assert router.supported_schemes() == ["s3", "s3a", "s3n"]
    assert bundle.async_object_io().delegate is router


def test_configured_retry_after_reaches_the_registry():
    bundle = StorageBundle(settings=Settings(S3_RETRY_AFTER_SECONDS=3))

    assert bundle.s3_clients().options.retry_after.total_seconds() == 3


def test_close_closes_client_registry():
    bundle = StorageBundle(settings=Settings())
    clients = bundle.s3_clients()

    with patch.object(clients, "close") as close:
        bundle.close()

    close.assert_called_once_with()


def test_close_without_registry_is_a_noop():
    StorageBundle(settings=Settings()).close()


def test_get_storage_bundle_is_cached(monkeypatch):
    monkeypatch.setenv("S3_REGION", "ap-south-1")
    get_storage_bundle.cache_clear()
    try:
        bundle = get_storage_bundle()

        assert bundle is get_storage_bundle()
        assert bundle.settings.S3_REGION == "ap-south-1"
    finally:
        get_storage_bundle.cache_clear()

