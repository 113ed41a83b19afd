"""
app/schemas package marker.
"""

from app.schemas.member_import import (
    HealthResponse,
    ImportJobListResponse,
    ImportJobResponse,
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
    OrganizationCreateRequest,
    OrganizationResponse,
    PaginationResponse,
)

__all__ = [
    "HealthResponse",
    "ImportJobListResponse",
    "ImportJobResponse",
    "ImportJobStatusResponse",
    "MemberDeleteRequest",
    "MemberDeleteResponse",
    "MemberImportAcceptedResponse",
    "MemberImportRequest",
    "MemberImportResponse",
    "MemberListResponse",
    "MemberPayload",
    "MemberResponse",
    "MemberUpsertResponse",
    "OrganizationCreateRequest",
    "OrganizationResponse",
    "PaginationResponse",
]
