"""
Import job listing endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.dependencies import get_member_import_service, get_org_address
from app.schemas.member_import import ImportJobListResponse, ImportJobResponse, PaginationResponse
from app.services.errors import InvalidJobTypeError
from app.services.member_import_service import MAX_PAGE_LIMIT, MemberImportService

router = APIRouter(prefix="/organizations/{address}", tags=["import-jobs"])


@router.get("/jobs", response_model=ImportJobListResponse)
def list_import_jobs(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=MAX_PAGE_LIMIT),
    job_type: str | None = Query(default=None, alias="type", description="org_members or census_participants"),
    org_address: str = Depends(get_org_address),
    service: MemberImportService = Depends(get_member_import_service),
) -> ImportJobListResponse:
    try:
        pagination, jobs = service.list_jobs(org_address, page=page, limit=limit, job_type=job_type)
    except InvalidJobTypeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    return ImportJobListResponse(
        jobs=[ImportJobResponse.from_model(job) for job in jobs],
        pagination=PaginationResponse.from_pagination(pagination),
    )
