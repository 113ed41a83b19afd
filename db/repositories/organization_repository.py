"""
Repository for organization registration and lookup.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from db.models.organization import Organization
from db.repositories.errors import OrganizationAlreadyExistsError, OrganizationNotFoundError


class OrganizationRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, address: str) -> Organization | None:
        return self._session.get(Organization, address)

    def ensure_exists(self, address: str) -> Organization:
        organization = self.get(address)
        if organization is None:
            raise OrganizationNotFoundError(f"Organization not found: {address}")
        return organization

    def create(self, *, address: str, name: str, country: str | None = None) -> Organization:
        if self.get(address) is not None:
            raise OrganizationAlreadyExistsError(f"Organization already exists: {address}")
        organization = Organization(
            address=address,
            name=name,
            country=country.upper() if country else None,
        )
        self._session.add(organization)
        self._session.flush()
        return organization
