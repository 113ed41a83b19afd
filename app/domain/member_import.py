"""
app/domain/member_import.py

Domain types for bulk member imports and import job tracking.
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass, field, replace
from typing import Any

from db.models.import_job import JobType
from db.repositories.types import NormalizedMember, Pagination

JOB_ID_BYTES = 16
_JOB_ID_PATTERN = re.compile(rf"^[0-9a-f]{{{JOB_ID_BYTES * 2}}}$")


class InvalidJobIdError(ValueError):
    """Raised when a job identifier is not 32 hex characters."""


class InvalidJobTypeError(ValueError):
    """Raised when a job type filter is not a known job type."""


def new_job_id() -> str:
    return secrets.token_hex(JOB_ID_BYTES)


def parse_job_id(raw: str) -> str:
    """
    Normalize a job identifier received from a caller.

    Accepts an optional ``0x`` prefix and either letter case, returns the
    canonical lowercase form.
    """

    candidate = (raw or "").strip().lower()
    if candidate.startswith("0x"):
        candidate = candidate[2:]
    if not _JOB_ID_PATTERN.match(candidate):
        raise InvalidJobIdError(f"Invalid job id: {raw!r}")
    return candidate


def parse_job_type(raw: str | None) -> JobType | None:
    if raw is None or not raw.strip():
        return None
    try:
        return JobType(raw.strip().lower())
    except ValueError as exc:
        allowed = ", ".join(item.value for item in JobType)
        raise InvalidJobTypeError(f"Invalid job type {raw!r}. Allowed values: {allowed}.") from exc


@dataclass(frozen=True)
class MemberRecordInput:
    """
    One raw member record as submitted. ``position`` is its 0-based index
    in the batch and is what errors are ordered by.
    """

    position: int
    member_number: str | None = None
    national_id: str | None = None
    name: str | None = None
    surname: str | None = None
    email: str | None = None
    phone: str | None = None
    birth_date: str | None = None
    password: str | None = None
    weight: Any = None
    other: dict[str, Any] | None = None

    @property
    def label(self) -> str:
        number = str(self.member_number).strip() if self.member_number is not None else ""
        # Surrogates and control characters are not printable.
        if number and number.isprintable():
            return f"member {number}"
        return f"row {self.position + 1}"


@dataclass(frozen=True)
class MemberImportBatch:
    org_address: str
    records: tuple[MemberRecordInput, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class ImportProgress:
    """
    Point-in-time summary of one import.

    ``progress`` is a percentage and only the final snapshot carries 100.
    """

    total: int
    added: int = 0
    errors: tuple[str, ...] = ()
    progress: int = 0
    job_id: str | None = None
    org_address: str | None = None

    @property
    def completed(self) -> bool:
        return self.progress >= 100

    def with_job_id(self, job_id: str, org_address: str | None = None) -> "ImportProgress":
        return replace(self, job_id=job_id, org_address=org_address or self.org_address)


__all__ = [
    "ImportProgress",
    "InvalidJobIdError",
    "InvalidJobTypeError",
    "JobType",
    "MemberImportBatch",
    "MemberRecordInput",
    "NormalizedMember",
    "Pagination",
    "new_job_id",
    "parse_job_id",
    "parse_job_type",
]
