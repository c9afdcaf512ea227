"""Factory selecting the remote filesystem backend for a vault."""

from __future__ import annotations

import logging
from typing import Any

from storage_vault.config import StorageVaultConfig
from storage_vault.errors import UnsupportedVaultTypeError
from storage_vault.filesystem import HdfsFileSystem, RemoteFileSystem, S3FileSystem
from storage_vault.types import VaultType

logger = logging.getLogger(__name__)

_BACKENDS: dict[VaultType, type[RemoteFileSystem]] = {
    VaultType.S3: S3FileSystem,
    VaultType.HDFS: HdfsFileSystem,
}


class RemoteFileSystemFactory:
    """Creates RemoteFileSystem instances from validated vault configurations.

    The backend is chosen once, from the configuration's type tag. Extra
    keyword arguments given to the factory are forwarded to every connector
    it creates (handle factories, trackers, normalisers).
    """

    def __init__(self, **connector_kwargs: Any) -> None:
        self._connector_kwargs = connector_kwargs

    def can_create(self, config: StorageVaultConfig) -> bool:
        """Return True if a backend exists for the config's vault type."""
        return config.vault_type in _BACKENDS

    def create(self, config: StorageVaultConfig) -> RemoteFileSystem:
        """Create the connector for ``config``.

        Raises:
            UnsupportedVaultTypeError: If no backend handles the vault type.

        """
        backend = _BACKENDS.get(config.vault_type)
        if backend is None:
            raise UnsupportedVaultTypeError(
                f"No filesystem backend for vault type {config.vault_type.value}"
            )
        logger.debug("Creating %s for vault %s", backend.__name__, config.name)
        return backend.from_config(config, **self._connector_kwargs)


def create_file_system(config: StorageVaultConfig, **kwargs: Any) -> RemoteFileSystem:
    """Create the remote filesystem for ``config``."""
    return RemoteFileSystemFactory(**kwargs).create(config)
