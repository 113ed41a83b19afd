"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.import_job import ImportJob, JobType
from db.models.org_member import OrgMember
from db.models.organization import Organization

__all__ = [
    "Organization",
    "OrgMember",
    "ImportJob",
    "JobType",
]
