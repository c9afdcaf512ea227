"""Tests for vault property lookup and native option building."""

from pathlib import Path

import pytest

from storage_vault.properties import (
    S3Properties,
    build_native_options,
    has_role_arn,
    hdfs_native_options,
    is_true,
    normalise_endpoint,
    s3_native_options,
    s3_property,
)
from storage_vault.types import VaultType


class TestS3PropertyLookup:
    """Test primary key and alias resolution."""

    def test_primary_key_wins_over_alias(self) -> None:
        """Test that s3.* keys take precedence over AWS_* aliases."""
        properties = {"s3.region": "eu-west-1", "AWS_REGION": "us-east-1"}

        assert s3_property(properties, S3Properties.REGION) == "eu-west-1"

    def test_alias_is_used_when_primary_missing(self) -> None:
        """Test fallback to the environment-style alias."""
        properties = {"AWS_ENDPOINT": "minio.local:9000"}

        assert s3_property(properties, S3Properties.ENDPOINT) == "minio.local:9000"

    def test_blank_values_count_as_unset(self) -> None:
        """Test that whitespace-only values are ignored."""
        properties = {"s3.region": "  ", "AWS_REGION": ""}

        assert s3_property(properties, S3Properties.REGION) is None

    @pytest.mark.parametrize(
        ("properties", "expected"),
        [
            ({"s3.role_arn": "arn:aws:iam::1:role/r"}, True),
            ({"AWS_ROLE_ARN": "arn:aws:iam::1:role/r"}, True),
            ({"s3.role_arn": ""}, False),
            ({}, False),
        ],
    )
    def test_has_role_arn_checks_both_keys(self, properties, expected) -> None:
        """Test role detection under either namespace."""
        assert has_role_arn(properties) is expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("true", True), ("TRUE", True), (" True ", True), ("1", False), (None, False)],
    )
    def test_is_true(self, value, expected) -> None:
        """Test boolean property parsing."""
        assert is_true(value) is expected

    def test_normalise_endpoint_adds_scheme(self) -> None:
        """Test that bare hosts get an https scheme and full URLs are kept."""
        assert normalise_endpoint("s3.amazonaws.com") == "https://s3.amazonaws.com"
        assert normalise_endpoint("http://minio:9000") == "http://minio:9000"
        assert normalise_endpoint(None) is None


class TestS3NativeOptions:
    """Test conversion of S3 properties to s3fs arguments."""

    def test_full_property_set(self) -> None:
        """Test that every supported S3 property is mapped."""
        options = s3_native_options(
            {
                "s3.endpoint": "http://minio:9000",
                "s3.region": "us-east-1",
                "s3.access_key": "ak",
                "s3.secret_key": "sk",
                "s3.session_token": "tok",
                "s3.connection.maximum": "50",
                "s3.connection.timeout": "1500",
                "s3.connection.request.timeout": "30000",
                "use_path_style": "true",
            }
        )

        assert options == {
            "key": "ak",
            "secret": "sk",
            "token": "tok",
            "endpoint_url": "http://minio:9000",
            "client_kwargs": {"region_name": "us-east-1"},
            "config_kwargs": {
                "s3": {"addressing_style": "path"},
                "signature_version": "s3v4",
                "max_pool_connections": 50,
                "connect_timeout": 1.5,
                "read_timeout": 30.0,
            },
        }

    def test_unset_values_are_dropped(self) -> None:
        """Test that absent properties do not become None arguments."""
        options = s3_native_options({"use_path_style": "false"})

        assert options == {
            "config_kwargs": {
                "s3": {"addressing_style": "virtual"},
                "signature_version": "s3v4",
            }
        }

    def test_non_numeric_limits_are_ignored(self) -> None:
        """Test that malformed numeric properties are skipped."""
        options = s3_native_options(
            {"s3.connection.maximum": "many", "s3.connection.timeout": "soon"}
        )

        assert "max_pool_connections" not in options["config_kwargs"]
        assert "connect_timeout" not in options["config_kwargs"]


class TestHdfsNativeOptions:
    """Test conversion of HDFS properties to HadoopFileSystem arguments."""

    def test_default_fs_gives_host_and_port(self) -> None:
        """Test namenode resolution from fs.defaultFS."""
        options = hdfs_native_options(
            {
                "fs.defaultFS": "hdfs://namenode:9000",
                "hadoop.username": "etl",
                "dfs.replication": "2",
            },
            "hdfs://other/path",
        )

        assert options["host"] == "namenode"
        assert options["port"] == 9000
        assert options["user"] == "etl"
        assert options["extra_conf"] == {"dfs.replication": "2"}

    def test_path_hint_used_without_default_fs(self) -> None:
        """Test that the path authority is used when fs.defaultFS is absent."""
        options = hdfs_native_options({}, "hdfs://nn.example.com/warehouse/*")

        assert options["host"] == "nn.example.com"
        assert options["port"] == 8020

    def test_ticket_cache_is_passed(self) -> None:
        """Test that the Kerberos ticket cache reaches the native client."""
        options = hdfs_native_options(
            {"fs.defaultFS": "hdfs://nn:8020"}, "", Path("/tmp/krb5cc_test")
        )

        assert options["kerb_ticket"] == "/tmp/krb5cc_test"

    def test_keytab_is_not_passed_through(self) -> None:
        """Test that the keytab location is not forwarded as client config."""
        options = hdfs_native_options(
            {
                "fs.defaultFS": "hdfs://nn:8020",
                "hadoop.kerberos.keytab": "/etc/etl.keytab",
                "hadoop.security.authentication": "kerberos",
            },
            "",
        )

        assert "hadoop.kerberos.keytab" not in options["extra_conf"]
        assert options["extra_conf"]["hadoop.security.authentication"] == "kerberos"


class TestBuildNativeOptions:
    """Test backend dispatch of native option building."""

    def test_dispatches_by_vault_type(self) -> None:
        """Test that each backend gets its own option shape."""
        s3 = build_native_options(VaultType.S3, {"s3.access_key": "ak"})
        hdfs = build_native_options(VaultType.HDFS, {"fs.defaultFS": "hdfs://nn:1"})

        assert s3["key"] == "ak"
        assert hdfs["host"] == "nn"

    def test_unknown_type_raises(self) -> None:
        """Test that UNKNOWN has no native filesystem."""
        with pytest.raises(ValueError, match="UNKNOWN"):
            build_native_options(VaultType.UNKNOWN, {})
