"""
app/api/dependencies.py

Shared FastAPI dependencies.
"""

from __future__ import annotations

from fastapi import HTTPException, Path, Request, status

from app.services.member_import_service import MemberImportService


def get_member_import_service(request: Request) -> MemberImportService:
    """
    Return the service instance owned by the running application.
    """

    service = getattr(request.app.state, "member_import_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Member import service is not initialised.",
        )
    return service


def get_org_address(address: str = Path(..., min_length=1, max_length=64)) -> str:
    """
    Normalize the organization address path parameter.
    """

    normalized = address.strip()
    if not normalized:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Organization address is required.",
        )
    return normalized
