"""Tests for authentication contexts."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from storage_vault.authentication import (
    context_for,
    default_ticket_cache,
    impersonated_context,
    simple_context,
)
from storage_vault.errors import VaultConfigError
from storage_vault.types import AuthenticationMode, VaultType

KERBEROS_PROPERTIES = {
    "fs.defaultFS": "hdfs://nn:8020",
    "hadoop.security.authentication": "kerberos",
    "hadoop.kerberos.principal": "etl@EXAMPLE.COM",
    "hadoop.kerberos.keytab": "/etc/security/etl.keytab",
}


class TestAuthenticationContext:
    """Test running actions under a context."""

    def test_simple_context_runs_action_directly(self) -> None:
        """Test that a SIMPLE context just returns the action's result."""
        context = simple_context()

        assert context.mode is AuthenticationMode.SIMPLE
        assert context.run_as(lambda: 42) == 42

    def test_impersonated_context_logs_in_before_action(self, tmp_path: Path) -> None:
        """Test that the login happens before the action runs."""
        calls: list[str] = []
        login = Mock(side_effect=lambda *_: calls.append("login"))
        cache = tmp_path / "krb5cc"

        context = impersonated_context(
            "etl@EXAMPLE.COM", "/etc/etl.keytab", login=login, ticket_cache=cache
        )
        result = context.run_as(lambda: calls.append("action") or "handle")

        assert result == "handle"
        assert calls == ["login", "action"]
        login.assert_called_once_with("etl@EXAMPLE.COM", "/etc/etl.keytab", cache)
        assert context.mode is AuthenticationMode.IMPERSONATED
        assert context.ticket_cache == cache

    def test_login_runs_once_per_context(self, tmp_path: Path) -> None:
        """Test that repeated actions reuse the first successful login."""
        login = Mock()
        context = impersonated_context(
            "etl@EXAMPLE.COM", "/k", login=login, ticket_cache=tmp_path / "cc"
        )

        context.run_as(lambda: None)
        context.run_as(lambda: None)

        login.assert_called_once()

    def test_failed_login_is_retried(self, tmp_path: Path) -> None:
        """Test that a failed login does not stick."""
        login = Mock(side_effect=[RuntimeError("kdc unreachable"), None])
        context = impersonated_context(
            "etl@EXAMPLE.COM", "/k", login=login, ticket_cache=tmp_path / "cc"
        )
        action = Mock(return_value="ok")

        with pytest.raises(RuntimeError, match="kdc unreachable"):
            context.run_as(action)
        action.assert_not_called()

        assert context.run_as(action) == "ok"
        assert login.call_count == 2

    def test_default_ticket_cache_is_stable_per_principal(self) -> None:
        """Test that one principal always maps to the same cache file."""
        first = default_ticket_cache("etl@EXAMPLE.COM")

        assert first == default_ticket_cache("etl@EXAMPLE.COM")
        assert first != default_ticket_cache("other@EXAMPLE.COM")


class TestContextFor:
    """Test context selection per backend."""

    def test_s3_is_always_simple(self) -> None:
        """Test that object storage never impersonates."""
        context = context_for(VaultType.S3, KERBEROS_PROPERTIES)

        assert context.mode is AuthenticationMode.SIMPLE

    def test_hdfs_without_kerberos_is_simple(self) -> None:
        """Test that HDFS with simple auth does not impersonate."""
        context = context_for(VaultType.HDFS, {"fs.defaultFS": "hdfs://nn:8020"})

        assert context.mode is AuthenticationMode.SIMPLE

    def test_hdfs_with_kerberos_impersonates(self) -> None:
        """Test that Kerberos HDFS vaults get an impersonating context."""
        login = Mock()

        context = context_for(VaultType.HDFS, KERBEROS_PROPERTIES, login=login)

        assert context.mode is AuthenticationMode.IMPERSONATED
        assert context.principal == "etl@EXAMPLE.COM"
        login.assert_not_called()

    def test_kerberos_without_keytab_is_rejected(self) -> None:
        """Test that Kerberos requires both principal and keytab."""
        properties = dict(KERBEROS_PROPERTIES)
        del properties["hadoop.kerberos.keytab"]

        with pytest.raises(VaultConfigError, match="hadoop.kerberos.keytab"):
            context_for(VaultType.HDFS, properties)
