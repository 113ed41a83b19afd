"""
Schemas for member import, import job and organization endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.domain.member_import import ImportProgress, MemberImportBatch, MemberRecordInput, Pagination
from db.models.import_job import ImportJob
from db.models.org_member import OrgMember


class MemberPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    member_number: str | None = None
    national_id: str | None = None
    name: str | None = None
    surname: str | None = None
    email: str | None = None
    phone: str | None = None
    birth_date: str | None = None
    password: str | None = None
    weight: int | str | None = None
    other: dict[str, Any] | None = None

    def to_record(self, position: int) -> MemberRecordInput:
        return MemberRecordInput(position=position, **self.model_dump())


class MemberImportRequest(BaseModel):
    members: list[MemberPayload] = Field(default_factory=list)
    notify_email: str | None = None

    def to_batch(self, org_address: str) -> MemberImportBatch:
        return MemberImportBatch(
            org_address=org_address,
            records=tuple(member.to_record(position) for position, member in enumerate(self.members)),
        )


class MemberImportResponse(BaseModel):
    added: int
    errors: list[str] = Field(default_factory=list)


class MemberImportAcceptedResponse(BaseModel):
    job_id: str


class ImportJobStatusResponse(BaseModel):
    job_id: str | None
    added: int
    total: int
    progress: int
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_progress(cls, progress: ImportProgress) -> "ImportJobStatusResponse":
        return cls(
            job_id=progress.job_id,
            added=progress.added,
            total=progress.total,
            progress=progress.progress,
            errors=list(progress.errors),
        )


class PaginationResponse(BaseModel):
    total_items: int
    current_page: int
    previous_page: int | None = None
    next_page: int | None = None
    last_page: int

    @classmethod
    def from_pagination(cls, pagination: Pagination) -> "PaginationResponse":
        return cls(
            total_items=pagination.total_items,
            current_page=pagination.current_page,
            previous_page=pagination.previous_page,
            next_page=pagination.next_page,
            last_page=pagination.last_page,
        )


class ImportJobResponse(BaseModel):
    job_id: str
    type: str
    org_address: str
    total: int
    added: int
    errors: list[str] = Field(default_factory=list)
    completed: bool
    created_at: datetime
    completed_at: datetime | None = None

    @classmethod
    def from_model(cls, job: ImportJob) -> "ImportJobResponse":
        return cls(
            job_id=job.job_id,
            type=job.job_type,
            org_address=job.org_address,
            total=job.total,
            added=job.added,
            errors=list(job.errors or []),
            completed=job.completed,
            created_at=job.created_at,
            completed_at=job.completed_at,
        )


class ImportJobListResponse(BaseModel):
    jobs: list[ImportJobResponse] = Field(default_factory=list)
    pagination: PaginationResponse


class MemberUpsertResponse(BaseModel):
    id: str


class MemberDeleteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ids: list[str] = Field(default_factory=list)
    delete_all: bool = Field(default=False, alias="all")


class MemberDeleteResponse(BaseModel):
    count: int


class MemberResponse(BaseModel):
    id: str
    member_number: str | None = None
    national_id: str | None = None
    name: str | None = None
    surname: str | None = None
    email: str | None = None
    phone: str | None = None
    birth_date: str | None = None
    weight: int = 1
    other: dict[str, Any] | None = None

    @classmethod
    def from_model(cls, member: OrgMember) -> "MemberResponse":
        return cls(
            id=member.id,
            member_number=member.member_number,
            national_id=member.national_id,
            name=member.name,
            surname=member.surname,
            email=member.email,
            phone=member.phone,
            birth_date=member.birth_date,
            weight=member.weight,
            other=member.other,
        )


class MemberListResponse(BaseModel):
    members: list[MemberResponse] = Field(default_factory=list)
    pagination: PaginationResponse


class OrganizationCreateRequest(BaseModel):
    address: str = Field(min_length=1, max_length=64)
    name: str = Field(default="", max_length=255)
    country: str | None = Field(default=None, min_length=2, max_length=2)


class OrganizationResponse(BaseModel):
    address: str
    name: str
    country: str | None = None
    created_at: datetime


class HealthResponse(BaseModel):
    status: str
    tracked_jobs: int
    running_jobs: int
