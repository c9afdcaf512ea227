"""Vault property keys and conversion to native filesystem options.

Vault properties arrive as a flat string map. S3 keys may be given either
under the ``s3.*`` namespace or under their ``AWS_*`` environment-style
alias; the ``s3.*`` spelling wins when both are present.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from storage_vault.types import VaultType

logger = logging.getLogger(__name__)

TYPE = "type"
PATH_VERSION = "path_version"
SHARD_NUM = "shard_num"
SET_AS_DEFAULT = "set_as_default"
USE_PATH_STYLE = "use_path_style"

RESERVED_KEYS = (PATH_VERSION, SHARD_NUM, SET_AS_DEFAULT)


class S3Properties:
    """S3 property keys."""

    ENDPOINT = "s3.endpoint"
    REGION = "s3.region"
    ACCESS_KEY = "s3.access_key"
    SECRET_KEY = "s3.secret_key"
    SESSION_TOKEN = "s3.session_token"
    ROLE_ARN = "s3.role_arn"
    EXTERNAL_ID = "s3.external_id"
    MAX_CONNECTIONS = "s3.connection.maximum"
    REQUEST_TIMEOUT_MS = "s3.connection.request.timeout"
    CONNECTION_TIMEOUT_MS = "s3.connection.timeout"

    class Env:
        """Environment-style aliases of the S3 keys."""

        ENDPOINT = "AWS_ENDPOINT"
        REGION = "AWS_REGION"
        ACCESS_KEY = "AWS_ACCESS_KEY"
        SECRET_KEY = "AWS_SECRET_KEY"
        SESSION_TOKEN = "AWS_TOKEN"
        ROLE_ARN = "AWS_ROLE_ARN"
        EXTERNAL_ID = "AWS_EXTERNAL_ID"
        MAX_CONNECTIONS = "AWS_MAX_CONNECTIONS"
        REQUEST_TIMEOUT_MS = "AWS_REQUEST_TIMEOUT_MS"
        CONNECTION_TIMEOUT_MS = "AWS_CONNECTION_TIMEOUT_MS"


_S3_ALIASES: dict[str, str] = {
    S3Properties.ENDPOINT: S3Properties.Env.ENDPOINT,
    S3Properties.REGION: S3Properties.Env.REGION,
    S3Properties.ACCESS_KEY: S3Properties.Env.ACCESS_KEY,
    S3Properties.SECRET_KEY: S3Properties.Env.SECRET_KEY,
    S3Properties.SESSION_TOKEN: S3Properties.Env.SESSION_TOKEN,
    S3Properties.ROLE_ARN: S3Properties.Env.ROLE_ARN,
    S3Properties.EXTERNAL_ID: S3Properties.Env.EXTERNAL_ID,
    S3Properties.MAX_CONNECTIONS: S3Properties.Env.MAX_CONNECTIONS,
    S3Properties.REQUEST_TIMEOUT_MS: S3Properties.Env.REQUEST_TIMEOUT_MS,
    S3Properties.CONNECTION_TIMEOUT_MS: S3Properties.Env.CONNECTION_TIMEOUT_MS,
}


class HdfsProperties:
    """HDFS property keys."""

    DEFAULT_FS = "fs.defaultFS"
    USERNAME = "hadoop.username"
    AUTHENTICATION = "hadoop.security.authentication"
    KERBEROS_PRINCIPAL = "hadoop.kerberos.principal"
    KERBEROS_KEYTAB = "hadoop.kerberos.keytab"

    PASSTHROUGH_PREFIXES = ("dfs.", "hadoop.", "fs.")
    DEFAULT_PORT = 8020


def s3_property(properties: Mapping[str, str], key: str) -> str | None:
    """Look up an S3 key under its primary name, then its alias.

    Empty values count as unset.
    """
    value = properties.get(key)
    if value is None or not value.strip():
        alias = _S3_ALIASES.get(key)
        value = properties.get(alias) if alias else None
    if value is None or not value.strip():
        return None
    return value.strip()


def has_role_arn(properties: Mapping[str, str]) -> bool:
    """Return True when a role-assumption ARN is set under either namespace."""
    return bool(properties.get(S3Properties.ROLE_ARN)) or bool(
        properties.get(S3Properties.Env.ROLE_ARN)
    )


def is_true(value: str | None) -> bool:
    """Parse a boolean property; only a case-insensitive ``true`` is true."""
    return value is not None and value.strip().lower() == "true"


def normalise_endpoint(endpoint: str | None) -> str | None:
    """Add an https scheme to an endpoint given as bare host[:port]."""
    if endpoint is None:
        return None
    if "://" in endpoint:
        return endpoint
    return f"https://{endpoint}"


def _millis_to_seconds(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return int(value) / 1000
    except ValueError:
        logger.warning("Ignoring non-numeric timeout value: %s", value)
        return None


def _to_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring non-numeric connection limit: %s", value)
        return None


def _drop_unset(options: dict[str, Any]) -> dict[str, Any]:
    """Remove entries whose key or value is unset, recursing into dicts."""
    cleaned: dict[str, Any] = {}
    for key, value in options.items():
        if key is None or value is None:
            continue
        if isinstance(value, dict):
            value = _drop_unset(value)  # type: ignore[arg-type]
            if not value:
                continue
        cleaned[key] = value
    return cleaned


def s3_native_options(properties: Mapping[str, str]) -> dict[str, Any]:
    """Convert S3 vault properties to ``s3fs.S3FileSystem`` keyword arguments."""
    path_style = is_true(properties.get(USE_PATH_STYLE, "true"))
    options: dict[str, Any] = {
        "key": s3_property(properties, S3Properties.ACCESS_KEY),
        "secret": s3_property(properties, S3Properties.SECRET_KEY),
        "token": s3_property(properties, S3Properties.SESSION_TOKEN),
        "endpoint_url": normalise_endpoint(
            s3_property(properties, S3Properties.ENDPOINT)
        ),
        "client_kwargs": {
            "region_name": s3_property(properties, S3Properties.REGION),
        },
        "config_kwargs": {
            "s3": {"addressing_style": "path" if path_style else "virtual"},
            "signature_version": "s3v4",
            "max_pool_connections": _to_int(
                s3_property(properties, S3Properties.MAX_CONNECTIONS)
            ),
            "connect_timeout": _millis_to_seconds(
                s3_property(properties, S3Properties.CONNECTION_TIMEOUT_MS)
            ),
            "read_timeout": _millis_to_seconds(
                s3_property(properties, S3Properties.REQUEST_TIMEOUT_MS)
            ),
        },
    }
    return _drop_unset(options)


def hdfs_native_options(
    properties: Mapping[str, str],
    path_hint: str,
    ticket_cache: Path | None = None,
) -> dict[str, Any]:
    """Convert HDFS vault properties to ``HadoopFileSystem`` keyword arguments.

    The namenode comes from ``fs.defaultFS``; when absent, the authority of
    ``path_hint`` is used instead.
    """
    default_fs = properties.get(HdfsProperties.DEFAULT_FS) or path_hint
    parsed = urlparse(default_fs)
    host = parsed.hostname or "default"

    consumed = {
        HdfsProperties.DEFAULT_FS,
        HdfsProperties.USERNAME,
        HdfsProperties.KERBEROS_KEYTAB,
    }
    extra_conf = {
        key: value
        for key, value in properties.items()
        if key.startswith(HdfsProperties.PASSTHROUGH_PREFIXES) and key not in consumed
    }

    options: dict[str, Any] = {
        "host": host,
        "port": parsed.port or (HdfsProperties.DEFAULT_PORT if parsed.hostname else 0),
        "user": properties.get(HdfsProperties.USERNAME),
        "kerb_ticket": str(ticket_cache) if ticket_cache else None,
        "extra_conf": extra_conf,
    }
    return _drop_unset(options)


def build_native_options(
    vault_type: VaultType,
    properties: Mapping[str, str],
    path_hint: str = "",
    ticket_cache: Path | None = None,
) -> dict[str, Any]:
    """Build native filesystem options for ``vault_type``.

    Raises:
        ValueError: If the backend has no native filesystem.

    """
    if vault_type is VaultType.S3:
        return s3_native_options(properties)
    if vault_type is VaultType.HDFS:
        return hdfs_native_options(properties, path_hint, ticket_cache)
    raise ValueError(f"No native filesystem for vault type {vault_type.value}")
