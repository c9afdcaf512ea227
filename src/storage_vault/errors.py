"""Error classes for the storage vault connector.

This module provides:
- StorageVaultError: Base exception class for all storage vault errors
- VaultConfigError, UnsupportedVaultTypeError: Vault declaration exceptions
- VaultAuthorizationError: Raised when the caller may not declare vaults
- FileSystemError, FileSystemClosedError, FileSystemConstructionError:
  Remote filesystem lifecycle exceptions
"""


class StorageVaultError(Exception):
    """Base exception for all storage vault errors."""

    pass


class VaultConfigError(StorageVaultError):
    """Raised when vault properties are malformed or incomplete."""

    pass


class UnsupportedVaultTypeError(VaultConfigError):
    """Raised when the vault type does not name a known backend."""

    pass


class VaultAuthorizationError(StorageVaultError):
    """Raised when the caller lacks the privilege to declare a vault."""

    pass


class FileSystemError(StorageVaultError):
    """Base exception for remote filesystem errors."""

    pass


class FileSystemClosedError(FileSystemError):
    """Raised when a closed remote filesystem is used."""

    def __init__(self, message: str = "FileSystem is closed.") -> None:
        super().__init__(message)


class FileSystemConstructionError(FileSystemError):
    """Raised when the native filesystem handle cannot be built.

    The connector stays uninitialised after this error, so a later call
    may attempt construction again.
    """

    pass
