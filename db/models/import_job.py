"""
db/models/import_job.py

Durable record of a bulk import job (the Job Store).
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONType, utcnow


class JobType(str, enum.Enum):
    ORG_MEMBERS = "org_members"
    CENSUS_PARTICIPANTS = "census_participants"


class ImportJob(Base):
    """
    One row per asynchronous import.

    The row is created when the job is accepted (``completed`` false) and
    finalized exactly once when the producer closes its progress channel.
    After that it is an immutable historical record.
    """

    __tablename__ = "import_jobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        unique=True,
        comment="Lowercase hex of 16 random bytes",
    )
    job_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="org_members, census_participants",
    )
    org_address: Mapped[str] = mapped_column(String(64), nullable=False)
    total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    added: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    errors: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_import_jobs_org_address_created_at", "org_address", "created_at"),
        Index("ix_import_jobs_org_address_job_type", "org_address", "job_type"),
    )
