"""
Organization member endpoints: bulk import, single upsert, listing, deletion and
import job status.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status
from sqlalchemy.exc import SQLAlchemyError

from app.api.dependencies import get_member_import_service, get_org_address
from app.schemas.member_import import (
    ImportJobStatusResponse,
    MemberDeleteRequest,
    MemberDeleteResponse,
    MemberImportAcceptedResponse,
    MemberImportRequest,
    MemberImportResponse,
    MemberListResponse,
    MemberPayload,
    MemberResponse,
    MemberUpsertResponse,
    PaginationResponse,
)
from app.services.errors import (
    BatchTooLargeError,
    BulkImportStartError,
    InvalidJobIdError,
    InvalidMemberError,
    JobNotFoundError,
    UnknownOrganizationError,
)
from app.services.member_import_service import MAX_PAGE_LIMIT, MemberImportService
from db.repositories.errors import OrganizationNotFoundError, UpdateWouldCreateDuplicatesError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/organizations/{address}", tags=["members"])


@router.post(
    "/members",
    response_model=MemberImportResponse | MemberImportAcceptedResponse,
)
def import_members(
    response: Response,
    payload: MemberImportRequest = Body(...),
    async_mode: bool = Query(default=False, alias="async", description="Return a job id instead of waiting"),
    org_address: str = Depends(get_org_address),
    service: MemberImportService = Depends(get_member_import_service),
) -> MemberImportResponse | MemberImportAcceptedResponse:
    try:
        result = service.submit_batch(
            payload.to_batch(org_address),
            async_mode=async_mode,
            notify_email=payload.notify_email,
        )
    except UnknownOrganizationError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except BulkImportStartError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except BatchTooLargeError as exc:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(exc)) from exc

    if isinstance(result, str):
        response.status_code = status.HTTP_202_ACCEPTED
        return MemberImportAcceptedResponse(job_id=result)
    return MemberImportResponse(added=result.added, errors=list(result.errors))


@router.put("/members", response_model=MemberUpsertResponse)
def upsert_member(
    member: MemberPayload = Body(...),
    org_address: str = Depends(get_org_address),
    service: MemberImportService = Depends(get_member_import_service),
) -> MemberUpsertResponse:
    try:
        member_id = service.upsert_member(org_address, member.to_record(0))
    except OrganizationNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvalidMemberError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "invalid_member", "message": str(exc)},
        ) from exc
    except UpdateWouldCreateDuplicatesError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "update_would_create_duplicates", "message": str(exc)},
        ) from exc
    return MemberUpsertResponse(id=member_id)


@router.get("/members", response_model=MemberListResponse)
def list_members(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=MAX_PAGE_LIMIT),
    search: str | None = Query(default=None, description="Case-insensitive text search"),
    org_address: str = Depends(get_org_address),
    service: MemberImportService = Depends(get_member_import_service),
) -> MemberListResponse:
    try:
        pagination, members = service.list_members(org_address, page=page, limit=limit, search=search)
    except OrganizationNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc

    return MemberListResponse(
        members=[MemberResponse.from_model(member) for member in members],
        pagination=PaginationResponse.from_pagination(pagination),
    )


@router.delete("/members", response_model=MemberDeleteResponse)
def delete_members(
    payload: MemberDeleteRequest = Body(...),
    org_address: str = Depends(get_org_address),
    service: MemberImportService = Depends(get_member_import_service),
) -> MemberDeleteResponse:
    try:
        deleted = service.delete_members(
            org_address,
            member_ids=None if payload.delete_all else payload.ids,
        )
    except OrganizationNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return MemberDeleteResponse(count=deleted)


@router.get("/members/job/{job_id}", response_model=ImportJobStatusResponse)
def get_import_job_status(
    job_id: str,
    org_address: str = Depends(get_org_address),
    service: MemberImportService = Depends(get_member_import_service),
) -> ImportJobStatusResponse:
    try:
        progress = service.resolve(job_id, org_address=org_address)
    except InvalidJobIdError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except JobNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.exception("Import job lookup failed org=%s id=%s", org_address, job_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Job store unavailable.",
        ) from exc

    return ImportJobStatusResponse.from_progress(progress)
