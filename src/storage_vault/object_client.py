"""S3 SDK listing client.

Used instead of the native filesystem handle when the vault authenticates
through an assumed role. The native S3 filesystem cannot pass an external
id with assumed-role credentials, so this client calls STS itself and lists
objects with the plain SDK.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol
from urllib.parse import urlparse

import boto3
from botocore.config import Config as BotoConfig

from storage_vault.error_normalizer import (
    ErrorNormalizer,
    default_normalizer,
    find_client_error,
)
from storage_vault.models import RemoteFile, Status
from storage_vault.patterns import compile_glob, literal_prefix
from storage_vault.properties import (
    USE_PATH_STYLE,
    S3Properties,
    is_true,
    normalise_endpoint,
    s3_property,
)

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = frozenset({"NoSuchBucket", "NoSuchKey", "NotFound", "404"})
_CREDENTIAL_REFRESH_MARGIN = timedelta(minutes=5)
_MAX_ATTEMPTS = 3


class ObjectStorageClient(Protocol):
    """Vendor SDK listing contract shared with the native listing path."""

    def glob_list(
        self, remote_path: str, file_name_only: bool
    ) -> tuple[Status, list[RemoteFile]]:
        """List entries matching ``remote_path``."""
        ...


def split_remote_path(remote_path: str) -> tuple[str, str, str]:
    """Split ``scheme://bucket/key`` into its parts.

    Raises:
        ValueError: If the path has no scheme or bucket.

    """
    parsed = urlparse(remote_path)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(f"Invalid object storage path: {remote_path}")
    return parsed.scheme, parsed.netloc, parsed.path.lstrip("/")


def _parent_dirs(key: str) -> list[str]:
    """Return the implied directory keys of ``key``, nearest first."""
    parts = key.rstrip("/").split("/")
    return ["/".join(parts[:i]) for i in range(len(parts) - 1, 0, -1)]


def _epoch_millis(value: Any) -> int:
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    return 0


class S3ObjectStorageClient:
    """boto3-backed ObjectStorageClient for S3 and S3-compatible services."""

    def __init__(
        self,
        properties: Mapping[str, str],
        normalizer: ErrorNormalizer | None = None,
        *,
        session: boto3.Session | None = None,
    ) -> None:
        """Initialise the client; no network call happens until first use.

        Args:
            properties: Validated S3 vault properties.
            normalizer: Error message normaliser shared with the native path.
            session: Pre-built boto3 session, mainly for tests.

        """
        self._properties = dict(properties)
        self._normalizer = normalizer or default_normalizer()
        self._session = session
        self._client: Any = None
        self._expiration: datetime | None = None
        self._lock = threading.Lock()

    def _get_session(self) -> boto3.Session:
        if self._session is None:
            self._session = boto3.Session(
                aws_access_key_id=s3_property(self._properties, S3Properties.ACCESS_KEY),
                aws_secret_access_key=s3_property(
                    self._properties, S3Properties.SECRET_KEY
                ),
                aws_session_token=s3_property(
                    self._properties, S3Properties.SESSION_TOKEN
                ),
                region_name=s3_property(self._properties, S3Properties.REGION),
            )
        return self._session

    def _client_config(self) -> BotoConfig:
        path_style = is_true(self._properties.get(USE_PATH_STYLE, "true"))
        kwargs: dict[str, Any] = {
            "signature_version": "s3v4",
            "s3": {"addressing_style": "path" if path_style else "virtual"},
            "retries": {"max_attempts": _MAX_ATTEMPTS, "mode": "standard"},
        }
        max_connections = s3_property(self._properties, S3Properties.MAX_CONNECTIONS)
        if max_connections and max_connections.isdigit():
            kwargs["max_pool_connections"] = int(max_connections)
        for option, key in (
            ("connect_timeout", S3Properties.CONNECTION_TIMEOUT_MS),
            ("read_timeout", S3Properties.REQUEST_TIMEOUT_MS),
        ):
            value = s3_property(self._properties, key)
            if value and value.isdigit():
                kwargs[option] = int(value) / 1000
        return BotoConfig(**kwargs)

    def _assume_role(self, session: boto3.Session) -> dict[str, Any]:
        role_arn = s3_property(self._properties, S3Properties.ROLE_ARN)
        if role_arn is None:
            return {}
        params: dict[str, Any] = {
            "RoleArn": role_arn,
            "RoleSessionName": f"storage-vault-{uuid.uuid4().hex[:12]}",
        }
        external_id = s3_property(self._properties, S3Properties.EXTERNAL_ID)
        if external_id:
            params["ExternalId"] = external_id
        logger.info("Assuming role %s for object listing", role_arn)
        sts = session.client(
            "sts", region_name=s3_property(self._properties, S3Properties.REGION)
        )
        credentials = sts.assume_role(**params)["Credentials"]
        self._expiration = credentials.get("Expiration")
        return {
            "aws_access_key_id": credentials["AccessKeyId"],
            "aws_secret_access_key": credentials["SecretAccessKey"],
            "aws_session_token": credentials["SessionToken"],
        }

    def _credentials_expiring(self) -> bool:
        if self._expiration is None:
            return False
        return datetime.now(UTC) >= self._expiration - _CREDENTIAL_REFRESH_MARGIN

    def get_client(self) -> Any:
        """Return the S3 client, building or refreshing it when needed."""
        client = self._client
        if client is not None and not self._credentials_expiring():
            return client
        with self._lock:
            if self._client is None or self._credentials_expiring():
                session = self._get_session()
                credentials = self._assume_role(session)
                self._client = session.client(
                    "s3",
                    endpoint_url=normalise_endpoint(
                        s3_property(self._properties, S3Properties.ENDPOINT)
                    ),
                    region_name=s3_property(self._properties, S3Properties.REGION),
                    config=self._client_config(),
                    **credentials,
                )
            return self._client

    def glob_list(
        self, remote_path: str, file_name_only: bool
    ) -> tuple[Status, list[RemoteFile]]:
        """List objects and implied directories matching ``remote_path``.

        Never raises for listing failures; they are reported in the Status.
        """
        try:
            scheme, bucket, key_pattern = split_remote_path(remote_path)
            matcher = compile_glob(key_pattern)
        except ValueError as e:
            return Status.common_error(str(e)), []

        result: list[RemoteFile] = []
        seen_dirs: set[str] = set()

        def full_path(key: str) -> str:
            if file_name_only:
                return key.rstrip("/").rsplit("/", 1)[-1]
            return f"{scheme}://{bucket}/{key}"

        try:
            paginator = self.get_client().get_paginator("list_objects_v2")
            for page in paginator.paginate(
                Bucket=bucket, Prefix=literal_prefix(key_pattern)
            ):
                for obj in page.get("Contents", []):
                    key: str = obj["Key"]
                    for parent in reversed(_parent_dirs(key)):
                        if parent not in seen_dirs and matcher.match(parent):
                            seen_dirs.add(parent)
                            result.append(RemoteFile(full_path(parent), False, -1, 0, 0))
                    if key.endswith("/"):
                        directory = key.rstrip("/")
                        if directory not in seen_dirs and matcher.match(directory):
                            seen_dirs.add(directory)
                            result.append(
                                RemoteFile(
                                    full_path(directory),
                                    False,
                                    -1,
                                    0,
                                    _epoch_millis(obj.get("LastModified")),
                                )
                            )
                        continue
                    if matcher.match(key):
                        result.append(
                            RemoteFile(
                                full_path(key),
                                True,
                                int(obj.get("Size", 0)),
                                0,
                                _epoch_millis(obj.get("LastModified")),
                            )
                        )
        except Exception as e:
            client_error = find_client_error(e)
            code = client_error.response.get("Error", {}).get("Code") if client_error else None
            if code in _NOT_FOUND_CODES:
                logger.info("file not found: %s", e)
                return Status.not_found(str(e)), []
            logger.error("errors while glob list %s: %s", remote_path, e)
            return Status.common_error(self._normalizer.describe(e)), []

        logger.debug("remotePath: %s, matched %d entries", remote_path, len(result))
        return Status.OK, result
