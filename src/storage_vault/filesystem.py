"""Remote filesystem connectors.

A RemoteFileSystem owns one lazily-built native fsspec handle. The handle
is constructed on first use, at most once even under concurrent callers,
and only a successful construction is remembered: a failure leaves the
connector uninitialised so the next call tries again.

Backends:
- S3FileSystem: s3fs handle, SDK listing for assumed-role vaults
- HdfsFileSystem: pyarrow HDFS handle, optional Kerberos impersonation
"""

from __future__ import annotations

import abc
import logging
import threading
from collections.abc import Callable, Mapping
from types import MappingProxyType, TracebackType
from typing import Any, ClassVar, Self, override

import fsspec
from fsspec import AbstractFileSystem

from storage_vault.authentication import (
    AuthenticationContext,
    KerberosLogin,
    context_for,
    kinit_login,
)
from storage_vault.config import StorageVaultConfig
from storage_vault.error_normalizer import ErrorNormalizer, default_normalizer
from storage_vault.errors import FileSystemClosedError, FileSystemConstructionError
from storage_vault.listing import GlobDispatcher
from storage_vault.models import RemoteFile, Status
from storage_vault.object_client import ObjectStorageClient, S3ObjectStorageClient
from storage_vault.properties import build_native_options
from storage_vault.reclamation import HandleTracker
from storage_vault.types import ConnectorState, VaultType

logger = logging.getLogger(__name__)

HandleFactory = Callable[[str, dict[str, Any]], AbstractFileSystem]


def open_native_filesystem(protocol: str, options: dict[str, Any]) -> AbstractFileSystem:
    """Build a private fsspec filesystem instance.

    The instance cache is skipped so that no two connectors share a handle.
    """
    return fsspec.filesystem(protocol, skip_instance_cache=True, **options)


def release_native_filesystem(handle: AbstractFileSystem) -> None:
    """Release a native handle's cached listings and connections."""
    handle.invalidate_cache()
    close = getattr(handle, "close", None)
    if callable(close):
        close()


class RemoteFileSystem(abc.ABC):
    """Base connector: lazy native handle plus glob listing.

    Usable as a context manager; leaving the block closes the connector.
    """

    vault_type: ClassVar[VaultType]
    protocol: ClassVar[str]

    def __init__(
        self,
        properties: Mapping[str, str],
        *,
        handle_factory: HandleFactory = open_native_filesystem,
        normalizer: ErrorNormalizer | None = None,
        login: KerberosLogin = kinit_login,
        tracker: HandleTracker | None = None,
    ) -> None:
        """Initialise the connector without touching the backend.

        Args:
            properties: Validated vault properties.
            handle_factory: Builds the native handle from protocol and options.
            normalizer: Error message normaliser for listing failures.
            login: Kerberos login used by impersonating contexts.
            tracker: Reclamation tracker; the process-wide one by default.

        """
        self._properties: Mapping[str, str] = MappingProxyType(dict(properties))
        self._handle_factory = handle_factory
        self._normalizer = normalizer or default_normalizer()
        self._login = login
        self._tracker = tracker or HandleTracker()
        self._lock = threading.Lock()
        self._handle: AbstractFileSystem | None = None
        self._auth_context: AuthenticationContext | None = None
        self._state = ConnectorState.UNINITIALIZED

    @classmethod
    def from_config(cls, config: StorageVaultConfig, **kwargs: Any) -> Self:
        """Create a connector from a validated vault configuration."""
        return cls(config.properties, **kwargs)

    @property
    def properties(self) -> Mapping[str, str]:
        """Return the read-only vault properties."""
        return self._properties

    @property
    def state(self) -> ConnectorState:
        """Return the lifecycle state."""
        return self._state

    @property
    def closed(self) -> bool:
        """Return True once the connector has been closed."""
        return self._state is ConnectorState.CLOSED

    @property
    def authentication_context(self) -> AuthenticationContext | None:
        """Return the context the handle was built under, if built."""
        return self._auth_context

    @property
    @abc.abstractmethod
    def dispatcher(self) -> GlobDispatcher:
        """Return the listing dispatcher of this backend."""
        ...

    def acquire_handle(self, path_hint: str) -> AbstractFileSystem:
        """Return the native handle, building it on first use.

        Args:
            path_hint: Remote path the caller is about to access.

        Returns:
            The connector's native filesystem handle.

        Raises:
            FileSystemClosedError: If the connector has been closed.
            FileSystemConstructionError: If the handle cannot be built.

        """
        if self._state is ConnectorState.CLOSED:
            raise FileSystemClosedError()
        handle = self._handle
        if self._state is ConnectorState.READY and handle is not None:
            return handle

        with self._lock:
            if self._state is ConnectorState.CLOSED:
                raise FileSystemClosedError()
            if self._state is ConnectorState.READY and self._handle is not None:
                return self._handle
            return self._construct(path_hint)

    def _construct(self, path_hint: str) -> AbstractFileSystem:
        # Caller holds self._lock.
        try:
            context = context_for(self.vault_type, self._properties, login=self._login)
            options = build_native_options(
                self.vault_type, self._properties, path_hint, context.ticket_cache
            )
            handle = context.run_as(lambda: self._handle_factory(self.protocol, options))
        except Exception as e:
            logger.warning(
                "Failed to build %s filesystem for %s: %s",
                self.vault_type.value,
                path_hint,
                e,
            )
            raise FileSystemConstructionError(
                f"Failed to get {self.vault_type.value} FileSystem for {e}"
            ) from e

        self._handle = handle
        self._auth_context = context
        self._tracker.register(self, handle, release_native_filesystem)
        self._state = ConnectorState.READY
        logger.info(
            "Built %s filesystem (auth=%s)", self.vault_type.value, context.mode.value
        )
        return handle

    def glob_list(
        self, remote_path: str, file_name_only: bool = False
    ) -> tuple[Status, list[RemoteFile]]:
        """List entries matching ``remote_path``; see GlobDispatcher.glob_list."""
        return self.dispatcher.glob_list(remote_path, file_name_only)

    def close(self) -> None:
        """Release the native handle. Safe to call more than once."""
        with self._lock:
            if self._state is ConnectorState.CLOSED:
                return
            self._state = ConnectorState.CLOSED
            handle = self._handle
            self._handle = None
        if handle is None:
            logger.debug("Closed %s filesystem before first use", self.vault_type.value)
            return
        self._tracker.deregister(self)
        release_native_filesystem(handle)
        logger.info("Closed %s filesystem", self.vault_type.value)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class S3FileSystem(RemoteFileSystem):
    """S3 and S3-compatible object storage connector."""

    vault_type: ClassVar[VaultType] = VaultType.S3
    protocol: ClassVar[str] = "s3"

    def __init__(
        self,
        properties: Mapping[str, str],
        *,
        object_client: ObjectStorageClient | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialise the S3 connector.

        Args:
            properties: Validated S3 vault properties.
            object_client: SDK client for assumed-role listings; built from
                the properties when omitted.
            **kwargs: Forwarded to RemoteFileSystem.

        """
        super().__init__(properties, **kwargs)
        client = object_client or S3ObjectStorageClient(
            self._properties, self._normalizer
        )
        self._dispatcher = GlobDispatcher(self, client, self._normalizer)

    @property
    @override
    def dispatcher(self) -> GlobDispatcher:
        return self._dispatcher


class HdfsFileSystem(RemoteFileSystem):
    """HDFS connector; lists through the native handle only."""

    vault_type: ClassVar[VaultType] = VaultType.HDFS
    protocol: ClassVar[str] = "hdfs"

    def __init__(self, properties: Mapping[str, str], **kwargs: Any) -> None:
        super().__init__(properties, **kwargs)
        self._dispatcher = GlobDispatcher(self, None, self._normalizer)

    @property
    @override
    def dispatcher(self) -> GlobDispatcher:
        return self._dispatcher
