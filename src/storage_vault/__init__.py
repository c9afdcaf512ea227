"""Storage vault declarations and remote filesystem connectors."""

__version__ = "0.1.0"

from storage_vault.authentication import (
    AuthenticationContext,
    context_for,
    impersonated_context,
    simple_context,
)
from storage_vault.config import StorageVaultConfig, VaultDeclaration
from storage_vault.error_normalizer import (
    MINIO_ERROR_HEADER,
    ErrorNormalizer,
    NormalizationRule,
)
from storage_vault.errors import (
    FileSystemClosedError,
    FileSystemConstructionError,
    FileSystemError,
    StorageVaultError,
    UnsupportedVaultTypeError,
    VaultAuthorizationError,
    VaultConfigError,
)
from storage_vault.factory import RemoteFileSystemFactory, create_file_system
from storage_vault.filesystem import HdfsFileSystem, RemoteFileSystem, S3FileSystem
from storage_vault.listing import GlobDispatcher
from storage_vault.models import RemoteFile, Status, StatusCode
from storage_vault.object_client import ObjectStorageClient, S3ObjectStorageClient
from storage_vault.reclamation import HandleTracker
from storage_vault.types import AuthenticationMode, ConnectorState, VaultType

__all__ = [
    "__version__",
    # Configuration
    "StorageVaultConfig",
    "VaultDeclaration",
    "VaultType",
    # Connectors
    "RemoteFileSystem",
    "S3FileSystem",
    "HdfsFileSystem",
    "RemoteFileSystemFactory",
    "create_file_system",
    "ConnectorState",
    # Listing
    "GlobDispatcher",
    "ObjectStorageClient",
    "S3ObjectStorageClient",
    "RemoteFile",
    "Status",
    "StatusCode",
    # Authentication
    "AuthenticationContext",
    "AuthenticationMode",
    "context_for",
    "impersonated_context",
    "simple_context",
    # Error handling
    "ErrorNormalizer",
    "NormalizationRule",
    "MINIO_ERROR_HEADER",
    "HandleTracker",
    "StorageVaultError",
    "VaultConfigError",
    "UnsupportedVaultTypeError",
    "VaultAuthorizationError",
    "FileSystemError",
    "FileSystemClosedError",
    "FileSystemConstructionError",
]
