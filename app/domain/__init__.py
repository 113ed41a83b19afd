"""
app/domain package marker.
"""

from app.domain.member_import import (
    ImportProgress,
    InvalidJobIdError,
    InvalidJobTypeError,
    JobType,
    MemberImportBatch,
    MemberRecordInput,
    NormalizedMember,
    Pagination,
)

__all__ = [
    "ImportProgress",
    "InvalidJobIdError",
    "InvalidJobTypeError",
    "JobType",
    "MemberImportBatch",
    "MemberRecordInput",
    "NormalizedMember",
    "Pagination",
]
