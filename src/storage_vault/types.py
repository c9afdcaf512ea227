"""Enumerations shared across the storage vault package."""

from __future__ import annotations

from enum import Enum


class VaultType(Enum):
    """Backend kind a storage vault points at."""

    S3 = "S3"
    HDFS = "HDFS"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_string(cls, value: str) -> VaultType:
        """Resolve a type string case-insensitively, UNKNOWN if unmatched."""
        normalised = value.strip().upper()
        for member in cls:
            if member is not cls.UNKNOWN and member.value == normalised:
                return member
        return cls.UNKNOWN


class AuthenticationMode(Enum):
    """How privileged construction calls are executed."""

    SIMPLE = "simple"
    IMPERSONATED = "impersonated"


class ConnectorState(Enum):
    """Lifecycle state of a remote filesystem connector."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    CLOSED = "closed"
