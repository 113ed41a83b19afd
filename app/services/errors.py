"""
Service-layer exceptions for member imports.
"""

from __future__ import annotations

from app.domain.member_import import InvalidJobIdError, InvalidJobTypeError


class MemberImportError(Exception):
    """Base exception for member import failures."""


class BulkImportStartError(MemberImportError):
    """Raised when a batch cannot be started because storage is unavailable."""


class UnknownOrganizationError(BulkImportStartError):
    """Raised when the owning organization of a batch does not exist."""


class BatchTooLargeError(MemberImportError):
    """Raised when a batch exceeds the configured maximum size."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"Batch of {size} records exceeds the limit of {limit}.")
        self.size = size
        self.limit = limit


class InvalidMemberError(MemberImportError):
    """Raised when a single member record fails validation."""


class JobNotFoundError(MemberImportError):
    """Raised when a job id is unknown to both the registry and the store."""


class ChannelClosedError(RuntimeError):
    """Raised when a snapshot is put on a progress channel that was closed."""


__all__ = [
    "BatchTooLargeError",
    "BulkImportStartError",
    "ChannelClosedError",
    "InvalidJobIdError",
    "InvalidJobTypeError",
    "InvalidMemberError",
    "JobNotFoundError",
    "MemberImportError",
    "UnknownOrganizationError",
]
