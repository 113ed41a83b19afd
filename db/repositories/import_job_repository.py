"""
Repository for the durable import job record (the Job Store).
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from db.base import utcnow
from db.models.import_job import ImportJob
from db.repositories.types import Pagination


class ImportJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_job(self, job_id: str) -> ImportJob | None:
        stmt = select(ImportJob).where(ImportJob.job_id == job_id)
        return self._session.scalars(stmt).first()

    def create_job(
        self,
        *,
        job_id: str,
        job_type: str,
        org_address: str,
        total: int = 0,
        created_at: datetime | None = None,
    ) -> ImportJob:
        job = ImportJob(
            job_id=job_id,
            job_type=job_type,
            org_address=org_address,
            total=total,
            added=0,
            errors=[],
            completed=False,
            created_at=created_at or utcnow(),
        )
        self._session.add(job)
        self._session.flush()
        return job

    def complete_job(
        self,
        *,
        job_id: str,
        job_type: str,
        org_address: str,
        total: int,
        added: int,
        errors: Sequence[str],
    ) -> ImportJob:
        """
        Record the final outcome of a job.

        Creates the row when it was never pre-created. A job that is already
        completed is returned untouched, so repeated calls are harmless.
        """

        job = self.get_job(job_id)
        if job is None:
            job = ImportJob(
                job_id=job_id,
                job_type=job_type,
                org_address=org_address,
                created_at=utcnow(),
            )
            self._session.add(job)
        elif job.completed:
            return job

        job.total = total
        job.added = added
        job.errors = list(errors)
        job.completed = True
        job.completed_at = utcnow()
        self._session.flush()
        return job

    def list_jobs(
        self,
        org_address: str,
        *,
        page: int = 1,
        limit: int = 10,
        job_type: str | None = None,
    ) -> tuple[Pagination, list[ImportJob]]:
        stmt: Select[tuple[ImportJob]] = select(ImportJob).where(ImportJob.org_address == org_address)
        if job_type:
            stmt = stmt.where(ImportJob.job_type == job_type)

        total = int(self._session.scalar(select(func.count()).select_from(stmt.subquery())) or 0)
        stmt = (
            stmt.order_by(ImportJob.created_at.desc(), ImportJob.id.desc())
            .offset(Pagination.offset(page=page, limit=limit))
            .limit(limit)
        )
        jobs = list(self._session.scalars(stmt).all())
        return Pagination.build(total_items=total, page=page, limit=limit), jobs
