"""Listing result models.

Provides typed dataclasses for listing status and remote file descriptors.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar


class StatusCode(Enum):
    """Outcome taxonomy exposed to listing callers."""

    OK = "OK"
    NOT_FOUND = "NOT_FOUND"
    COMMON_ERROR = "COMMON_ERROR"


@dataclass(frozen=True)
class Status:
    """Result of a listing operation.

    Listing failures are reported through this value rather than raised,
    so callers branch on ``code``.

    Attributes:
        code: Outcome category.
        message: Human-readable detail, empty for OK.

    """

    code: StatusCode
    message: str = ""

    OK: ClassVar[Status]

    @property
    def ok(self) -> bool:
        """Return True when the operation succeeded."""
        return self.code is StatusCode.OK

    @classmethod
    def not_found(cls, detail: str) -> Status:
        """Build a NOT_FOUND status with the standard message prefix."""
        return cls(StatusCode.NOT_FOUND, f"file not found: {detail}")

    @classmethod
    def common_error(cls, message: str) -> Status:
        """Build a COMMON_ERROR status."""
        return cls(StatusCode.COMMON_ERROR, message)

    def __str__(self) -> str:
        if self.message:
            return f"[{self.code.value}] {self.message}"
        return f"[{self.code.value}]"


Status.OK = Status(StatusCode.OK)


@dataclass(frozen=True)
class RemoteFile:
    """A single entry returned by a glob listing.

    Attributes:
        path: Full URI of the entry, or only its final segment when the
            listing was asked for names only.
        is_file: False for directories.
        size: Byte length, -1 for directories.
        block_size: Block size reported by the backend.
        modification_time: Last modification time in epoch milliseconds.

    """

    path: str
    is_file: bool
    size: int
    block_size: int
    modification_time: int
