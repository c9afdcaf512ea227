"""Glob listing dispatch (GlobDispatcher).

Vaults that authenticate through an assumed role list through the vendor
SDK client; every other vault lists through its native filesystem handle.
Both paths return the same ``(Status, list[RemoteFile])`` shape, and I/O
failures are reported in the Status instead of being raised.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from pathlib import PurePosixPath
from typing import Any, Protocol

from fsspec import AbstractFileSystem

from storage_vault.error_normalizer import ErrorNormalizer, default_normalizer
from storage_vault.errors import FileSystemClosedError
from storage_vault.models import RemoteFile, Status
from storage_vault.object_client import ObjectStorageClient
from storage_vault.properties import has_role_arn

logger = logging.getLogger(__name__)

_MTIME_KEYS = ("LastModified", "last_modified", "mtime", "modified", "created")


class HandleSource(Protocol):
    """What the dispatcher needs from a remote filesystem connector."""

    @property
    def properties(self) -> Mapping[str, str]:
        """Validated vault properties."""
        ...

    @property
    def closed(self) -> bool:
        """True once the connector has been closed."""
        ...

    def acquire_handle(self, path_hint: str) -> AbstractFileSystem:
        """Return the native filesystem handle."""
        ...


def _to_millis(value: Any) -> int | None:
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    if isinstance(value, int | float):
        return int(value * 1000)
    return None


def modification_millis(info: Mapping[str, Any]) -> int:
    """Return an entry's modification time in epoch milliseconds, 0 if unknown."""
    for key in _MTIME_KEYS:
        millis = _to_millis(info.get(key))
        if millis is not None:
            return millis
    return 0


def to_remote_file(
    handle: AbstractFileSystem,
    name: str,
    info: Mapping[str, Any],
    file_name_only: bool,
) -> RemoteFile:
    """Map a native listing entry to a RemoteFile."""
    is_dir = info.get("type") == "directory"
    if file_name_only:
        path = PurePosixPath(name.rstrip("/")).name
    else:
        path = handle.unstrip_protocol(name)
    block_size = info.get("blocksize") or info.get("block_size") or handle.blocksize
    return RemoteFile(
        path=path,
        is_file=not is_dir,
        size=-1 if is_dir else int(info.get("size") or 0),
        block_size=int(block_size or 0),
        modification_time=modification_millis(info),
    )


class GlobDispatcher:
    """Chooses and runs a listing strategy for one connector."""

    def __init__(
        self,
        source: HandleSource,
        object_client: ObjectStorageClient | None = None,
        normalizer: ErrorNormalizer | None = None,
    ) -> None:
        """Initialise the dispatcher.

        Args:
            source: Connector owning the native handle.
            object_client: SDK client for assumed-role vaults. Without one,
                every listing uses the native handle.
            normalizer: Error message normaliser.

        """
        self._source = source
        self._object_client = object_client
        self._normalizer = normalizer or default_normalizer()

    def uses_object_client(self) -> bool:
        """Return True if listings go through the SDK client."""
        return self._object_client is not None and has_role_arn(self._source.properties)

    def glob_list(
        self, remote_path: str, file_name_only: bool = False
    ) -> tuple[Status, list[RemoteFile]]:
        """List entries matching the wildcard pattern ``remote_path``.

        Args:
            remote_path: Full URI with a glob pattern, e.g. ``s3://bucket/dir/*``.
            file_name_only: Return only the final path segment of each entry.

        Returns:
            Listing status and matched entries, in backend order.

        Raises:
            FileSystemClosedError: If the connector has been closed.

        """
        if self._source.closed:
            raise FileSystemClosedError()

        if self._object_client is not None and self.uses_object_client():
            logger.info("aws role arn mode, listing %s through the SDK client", remote_path)
            return self._object_client.glob_list(remote_path, file_name_only)

        return self._native_glob_list(remote_path, file_name_only)

    def _native_glob_list(
        self, remote_path: str, file_name_only: bool
    ) -> tuple[Status, list[RemoteFile]]:
        try:
            handle = self._source.acquire_handle(remote_path)
            entries: dict[str, dict[str, Any]] = handle.glob(remote_path, detail=True)  # type: ignore[assignment]
            result = [
                to_remote_file(handle, name, info, file_name_only)
                for name, info in entries.items()
            ]
        except FileSystemClosedError:
            raise
        except FileNotFoundError as e:
            logger.info("file not found: %s", e)
            return Status.not_found(str(e)), []
        except Exception as e:
            logger.error("errors while get file status %s: %s", remote_path, e)
            return Status.common_error(self._normalizer.describe(e)), []

        logger.debug("remotePath: %s, result: %s", remote_path, result)
        return Status.OK, result
