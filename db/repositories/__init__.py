"""
Repository layer exports.
"""

from db.repositories.errors import (
    MemberPersistenceError,
    OrganizationAlreadyExistsError,
    OrganizationNotFoundError,
    RepositoryError,
    UpdateWouldCreateDuplicatesError,
)
from db.repositories.import_job_repository import ImportJobRepository
from db.repositories.org_member_repository import OrgMemberRepository
from db.repositories.organization_repository import OrganizationRepository
from db.repositories.types import NormalizedMember, Pagination

__all__ = [
    "ImportJobRepository",
    "OrgMemberRepository",
    "OrganizationRepository",
    "NormalizedMember",
    "Pagination",
    "RepositoryError",
    "OrganizationNotFoundError",
    "OrganizationAlreadyExistsError",
    "MemberPersistenceError",
    "UpdateWouldCreateDuplicatesError",
]
