"""Tests for the S3 client registry."""

import threading
from unittest.mock import MagicMock, patch

import pytest
from prometheus_client import REGISTRY

from catalog_files.common.config import Settings
from catalog_files.infra.storage.errors import InvalidLocationError
from catalog_files.infra.storage.location import parse_location
from catalog_files.infra.storage.s3_clients import (
    S3BucketOptions,
    S3ClientSupplier,
    S3Options,
    build_s3_client,
    is_s3_scheme,
)


def _clients_created() -> float:
    return REGISTRY.get_sample_value(
        "object_io_clients_created_total", {"backend": "s3"}
    ) or 0.0


@pytest.fixture()
def options():
    return S3Options(
        defaults=S3BucketOptions(region="us-east-1", access_key_id="key"),
        buckets={
            "eu-bucket": S3BucketOptions(region="eu-west-1"),
            "minio-bucket": S3BucketOptions(
                endpoint_url="http://localhost:9000", path_style_access=True
            ),
            "twin-bucket": S3BucketOptions(region="us-east-1"),
        },
    )


class TestS3Options:
    def test_bucket_overrides_merge_over_defaults(self, options):
        effective = options.effective_options("eu-bucket")

        assert effective.region == "eu-west-1"
        assert effective.access_key_id == "key"

    def test_unknown_bucket_uses_defaults(self, options):
        assert options.effective_options("other") == options.defaults

    def test_from_mapping_rejects_unknown_keys(self):
        with pytest.raises(ValueError, match="Unknown S3 bucket option"):
            S3BucketOptions.from_mapping({"regoin": "eu-west-1"})

    def test_from_settings(self):
        settings = Settings(
            S3_REGION="us-east-1",
            S3_ENDPOINT_URL="http://localhost:9000",
            S3_PATH_STYLE_ACCESS=True,
            S3_RETRY_AFTER_SECONDS=7,
            S3_BUCKET_OPTIONS={"b1": {"region": "eu-west-1"}},
        )

        options = S3Options.from_settings(settings)

        assert options.defaults.region == "us-east-1"
        assert options.defaults.path_style_access is True
        assert options.retry_after.total_seconds() == 7
        assert options.effective_options("b1").region == "eu-west-1"
        assert options.effective_options("b1").endpoint_url == "http://localhost:9000"

    def test_repr_masks_secrets(self):
        text = repr(S3BucketOptions(secret_access_key="hunter2", session_token="tok"))

        assert "hunter2" not in text
        assert "tok'" not in text


class TestS3ClientSupplier:
    def test_reuses_client_for_same_bucket(self, options):
        factory = MagicMock(side_effect=lambda opts: MagicMock(name=repr(opts)))
        supplier = S3ClientSupplier(options, client_factory=factory)

        first = supplier.client_for("s3://eu-bucket/a")
        second = supplier.client_for("eu-bucket")

        assert first is second
        assert factory.call_count == 1

    def test_distinct_identities_get_distinct_clients(self, options):
        factory = MagicMock(side_effect=lambda opts: MagicMock())
        supplier = S3ClientSupplier(options, client_factory=factory)

        eu = supplier.client_for("eu-bucket")
        minio = supplier.client_for("minio-bucket")
        default = supplier.client_for("some-bucket")

        assert len({id(eu), id(minio), id(default)}) == 3
        built_with = [call.args[0] for call in factory.call_args_list]
        assert S3BucketOptions(
            endpoint_url="http://localhost:9000",
            region="us-east-1",
            access_key_id="key",
            path_style_access=True,
        ) in built_with

    def test_buckets_with_identical_options_share_a_client(self, options):
        factory = MagicMock(side_effect=lambda opts: MagicMock())
        supplier = S3ClientSupplier(options, client_factory=factory)

        assert supplier.client_for("twin-bucket") is supplier.client_for("plain")
        assert factory.call_count == 1

    def test_accepts_parsed_locations(self, options):
        supplier = S3ClientSupplier(options, client_factory=lambda opts: opts)

        client = supplier.client_for(parse_location("s3a://eu-bucket/x"))

        assert client.region == "eu-west-1"

    def test_location_without_authority_is_rejected(self, options):
        factory = MagicMock()
        supplier = S3ClientSupplier(options, client_factory=factory)

        with pytest.raises(InvalidLocationError):
            supplier.client_for("s3:///key")
        factory.assert_not_called()

    def test_concurrent_first_use_builds_one_client(self, options):
        built = []
        gate = threading.Barrier(16)

        def factory(opts):
            built.append(opts)
            return object()

        supplier = S3ClientSupplier(options, client_factory=factory)
        results = []
        results_lock = threading.Lock()

        def worker():
            gate.wait()
            client = supplier.client_for("s3://eu-bucket/key")
            with results_lock:
                results.append(client)

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(built) == 1
        assert len(results) == 16
        assert all(client is results[0] for client in results)

    def test_counts_constructions(self, options):
        supplier = S3ClientSupplier(options, client_factory=lambda opts: MagicMock())
        before = _clients_created()

        supplier.client_for("eu-bucket")
        supplier.client_for("eu-bucket")
        supplier.client_for("minio-bucket")

        assert _clients_created() - before == 2

    def test_close_closes_cached_clients(self, options):
        clients = []

        def factory(opts):
            client = MagicMock()
            clients.append(client)
            return client

        supplier = S3ClientSupplier(options, client_factory=factory)
        supplier.client_for("eu-bucket")
        supplier.client_for("minio-bucket")

        supplier.close()

        for client in clients:
            client.close.assert_called_once_with()
        # a fresh client is built after close
        supplier.client_for("eu-bucket")
        assert len(clients) == 3

    def test_close_waits_for_client_being_built(self, options):
        building = threading.Event()
        release = threading.Event()
        client = MagicMock()

        def factory(opts):
            building.set()
            release.wait(5)
            return client

        supplier = S3ClientSupplier(options, client_factory=factory)
        builder = threading.Thread(target=supplier.client_for, args=("eu-bucket",))
        builder.start()
        assert building.wait(5)

        closer = threading.Thread(target=supplier.close)
        closer.start()
        closer.join(0.1)
        assert closer.is_alive()

        release.set()
        builder.join(5)
        closer.join(5)

        client.close.assert_called_once_with()


class TestBuildS3Client:
    def test_passes_options_to_boto3(self):
        with patch("catalog_files.infra.storage.s3_clients.boto3") as boto3_mock:
            session = boto3_mock.session.Session.return_value

            build_s3_client(
                S3BucketOptions(
                    endpoint_url="http://localhost:9000",
                    region="us-east-1",
                    access_key_id="key",
                    secret_access_key="secret",
                    path_style_access=True,
                )
            )

        args, kwargs = session.client.call_args
        assert args == ("s3",)
        assert kwargs["endpoint_url"] == "http://localhost:9000"
        assert kwargs["region_name"] == "us-east-1"
        assert kwargs["aws_access_key_id"] == "key"
        assert kwargs["aws_secret_access_key"] == "secret"
        assert "aws_session_token" not in kwargs
        config = kwargs["config"]
        assert config.s3 == {"addressing_style": "path"}
        assert config.retries == {"mode": "standard", "max_attempts": 1}

    def test_omits_unset_options(self):
        with patch("catalog_files.infra.storage.s3_clients.boto3") as boto3_mock:
            session = boto3_mock.session.Session.return_value

            build_s3_client(S3BucketOptions())

        _, kwargs = session.client.call_args
        assert set(kwargs) == {"config"}
        assert kwargs["config"].s3 == {"addressing_style": "auto"}


@pytest.mark.parametrize(
    "scheme, expected",
    [("s3", True), ("S3A", True), ("s3n", True), ("gs", False), ("", False), (None, False)],
)
def test_is_s3_scheme(scheme, expected):
    assert is_s3_scheme(scheme) is expected
