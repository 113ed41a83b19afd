"""
Organization registration endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.dependencies import get_member_import_service
from app.schemas.member_import import OrganizationCreateRequest, OrganizationResponse
from app.services.member_import_service import MemberImportService
from db.repositories.errors import OrganizationAlreadyExistsError

router = APIRouter(tags=["organizations"])


@router.post(
    "/organizations",
    status_code=status.HTTP_201_CREATED,
    response_model=OrganizationResponse,
)
def create_organization(
    payload: OrganizationCreateRequest,
    service: MemberImportService = Depends(get_member_import_service),
) -> OrganizationResponse:
    try:
        organization = service.create_organization(
            address=payload.address.strip(),
            name=payload.name,
            country=payload.country,
        )
    except OrganizationAlreadyExistsError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    return OrganizationResponse(
        address=organization.address,
        name=organization.name,
        country=organization.country,
        created_at=organization.created_at,
    )
