"""Storage vault declaration validation.

Turns a raw ``CREATE STORAGE VAULT`` property map into an immutable
StorageVaultConfig. Reserved keys are pulled out of the persisted property
bag, and S3 vaults default to path-style addressing.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from types import MappingProxyType
from typing import Annotated, Any, Protocol, Self

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    field_validator,
)

from storage_vault.errors import (
    UnsupportedVaultTypeError,
    VaultAuthorizationError,
    VaultConfigError,
)
from storage_vault.properties import (
    PATH_VERSION,
    RESERVED_KEYS,
    SET_AS_DEFAULT,
    SHARD_NUM,
    TYPE,
    USE_PATH_STYLE,
    is_true,
)
from storage_vault.types import VaultType

logger = logging.getLogger(__name__)

_VAULT_NAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9\-_]{0,63}$")
_SENSITIVE_KEY_PARTS = ("secret", "password", "token", "keytab")
MASK = "*XXX"


class AccessChecker(Protocol):
    """Answers whether the current caller may administer storage vaults."""

    def has_admin_privilege(self) -> bool:
        """Return True if the caller holds the global ADMIN privilege."""
        ...


def _find_type(properties: Mapping[str, str]) -> str | None:
    """Return the ``type`` value, matching the key case-insensitively."""
    found: str | None = None
    for key, value in properties.items():
        if key.lower() == TYPE:
            found = value
    return found


def _parse_int(properties: dict[str, str], key: str) -> int:
    raw = properties.pop(key, None)
    if raw is None:
        return 0
    try:
        return int(raw)
    except ValueError as e:
        raise VaultConfigError(f"Property {key} must be an integer, got: {raw}") from e


def is_sensitive_key(key: str) -> bool:
    lowered = key.lower()
    return any(part in lowered for part in _SENSITIVE_KEY_PARTS)


class StorageVaultConfig(BaseModel):
    """Validated, immutable storage vault configuration.

    Invariants:
        - ``vault_type`` is never UNKNOWN
        - ``properties`` holds none of path_version, shard_num, set_as_default
        - S3 vaults always carry ``use_path_style``

    Example:
        ```python
        config = StorageVaultConfig.from_properties(
            "s3_vault",
            {"type": "S3", "s3.endpoint": "s3.us-east-1.amazonaws.com"},
        )
        assert config.properties["use_path_style"] == "true"
        ```

    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(description="Vault name")
    vault_type: VaultType = Field(description="Backend the vault points at")
    path_version: int = Field(default=0, description="Object path layout version")
    num_shard: int = Field(default=0, description="Number of path shards")
    set_as_default: bool = Field(
        default=False, description="Whether the vault becomes the default vault"
    )
    if_not_exists: bool = Field(
        default=False, description="Ignore the declaration if the vault exists"
    )
    properties: Mapping[str, str] = Field(description="Persisted property bag")

    @field_validator("vault_type")
    @classmethod
    def validate_known_type(cls, v: VaultType) -> VaultType:
        """Reject the UNKNOWN placeholder."""
        if v is VaultType.UNKNOWN:
            raise ValueError(f"Unsupported Storage Vault type: {v.value}")
        return v

    @field_validator("properties")
    @classmethod
    def freeze_properties(cls, v: Mapping[str, str]) -> Mapping[str, str]:
        """Reject reserved keys and wrap the property bag in a read-only view."""
        reserved = [key for key in RESERVED_KEYS if key in v]
        if reserved:
            raise ValueError(f"Reserved keys must not be persisted: {reserved}")
        return MappingProxyType(dict(v))

    @classmethod
    def from_properties(
        cls,
        name: str,
        properties: Mapping[str, str] | None,
        *,
        if_not_exists: bool = False,
        access_checker: AccessChecker | None = None,
    ) -> Self:
        """Validate a vault declaration.

        Args:
            name: Vault name.
            properties: Raw declaration properties. The mapping is not modified.
            if_not_exists: Whether the declaration carried IF NOT EXISTS.
            access_checker: Privilege source. When given, the caller must hold
                ADMIN before anything else is checked.

        Returns:
            Validated configuration.

        Raises:
            VaultAuthorizationError: If the caller is not an administrator.
            VaultConfigError: If the name or properties are invalid.
            UnsupportedVaultTypeError: If ``type`` names no known backend.

        """
        if access_checker is not None and not access_checker.has_admin_privilege():
            raise VaultAuthorizationError(
                "Access denied; you need (at least one of) the (ADMIN) privilege(s) "
                "for this operation"
            )

        if not _VAULT_NAME_PATTERN.match(name or ""):
            raise VaultConfigError(
                f"Incorrect vault name '{name}'. It must start with a letter and "
                "contain at most 64 letters, digits, '-' or '_'"
            )

        if not properties:
            raise VaultConfigError("Storage Vault properties can't be null")

        type_value = _find_type(properties)
        if type_value is None:
            raise VaultConfigError(f"Missing property {TYPE}")
        if not type_value.strip():
            raise VaultConfigError(f"Property {TYPE} cannot be empty")

        remaining = dict(properties)
        path_version = _parse_int(remaining, PATH_VERSION)
        num_shard = _parse_int(remaining, SHARD_NUM)
        set_as_default = is_true(remaining.pop(SET_AS_DEFAULT, "false"))

        vault_type = VaultType.from_string(type_value)
        if vault_type is VaultType.UNKNOWN:
            raise UnsupportedVaultTypeError(
                f"Unsupported Storage Vault type: {type_value}"
            )

        if vault_type is VaultType.S3 and USE_PATH_STYLE not in remaining:
            remaining[USE_PATH_STYLE] = "true"

        config = cls(
            name=name,
            vault_type=vault_type,
            path_version=path_version,
            num_shard=num_shard,
            set_as_default=set_as_default,
            if_not_exists=if_not_exists,
            properties=remaining,
        )
        logger.debug(
            "Validated storage vault %s (type=%s, path_version=%d, num_shard=%d)",
            name,
            vault_type.value,
            path_version,
            num_shard,
        )
        return config

    def to_sql(self) -> str:
        """Render the declaration with secret values masked."""
        rendered = ", ".join(
            f'"{key}" = "{MASK if is_sensitive_key(key) else value}"'
            for key, value in self.properties.items()
        )
        return f"CREATE STORAGE VAULT '{self.name}' PROPERTIES({rendered})"


def _stringify_properties(value: Any) -> Any:
    """Coerce YAML scalars to the string values vault properties expect."""
    if not isinstance(value, dict):
        return value
    result: dict[str, str] = {}
    for key, item in value.items():  # type: ignore[misc]
        if isinstance(item, bool):
            result[str(key)] = "true" if item else "false"
        else:
            result[str(key)] = str(item)
    return result


class VaultDeclaration(BaseModel):
    """A vault declaration as written in a YAML file.

    Example:
        ```yaml
        name: s3_vault
        if_not_exists: true
        properties:
          type: S3
          s3.endpoint: s3.us-east-1.amazonaws.com
          s3.region: us-east-1
        ```

    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    if_not_exists: bool = False
    properties: Annotated[dict[str, str], BeforeValidator(_stringify_properties)] = (
        Field(default_factory=dict)
    )

    def to_config(self, access_checker: AccessChecker | None = None) -> StorageVaultConfig:
        """Validate this declaration into a StorageVaultConfig."""
        return StorageVaultConfig.from_properties(
            self.name,
            self.properties,
            if_not_exists=self.if_not_exists,
            access_checker=access_checker,
        )
