"""
Member repository: keyed upserts and paginated search.
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import Select, delete, func, or_, select
from sqlalchemy.orm import Session

from db.models.org_member import OrgMember
from db.repositories.errors import UpdateWouldCreateDuplicatesError
from db.repositories.types import NormalizedMember, Pagination

_UPDATABLE_FIELDS: tuple[str, ...] = (
    "member_number",
    "national_id",
    "name",
    "surname",
    "email",
    "birth_date",
    "parsed_birth_date",
    "weight",
    "other",
)

# Kept from the stored row when the incoming record leaves them empty.
_PRESERVED_WHEN_EMPTY: tuple[str, ...] = ("phone", "hashed_password")


class OrgMemberRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def _find_by(self, org_address: str, column, value: str | None) -> OrgMember | None:
        if not value:
            return None
        stmt = select(OrgMember).where(OrgMember.org_address == org_address, column == value)
        return self._session.scalars(stmt).first()

    def find_existing(self, org_address: str, member: NormalizedMember) -> OrgMember | None:
        """
        Return the stored member the record refers to, if any.

        Matching goes by member number first, then by national id. When both
        keys match but point at different members there is no safe target.
        """

        by_number = self._find_by(org_address, OrgMember.member_number, member.member_number)
        by_national_id = self._find_by(org_address, OrgMember.national_id, member.national_id)
        if by_number is not None and by_national_id is not None and by_number.id != by_national_id.id:
            raise UpdateWouldCreateDuplicatesError(
                f"member_number {member.member_number!r} and national_id "
                f"{member.national_id!r} belong to different members"
            )
        return by_number or by_national_id

    def upsert_member(self, org_address: str, member: NormalizedMember) -> OrgMember:
        """
        Insert or update one member and flush it.

        The caller owns the transaction. IntegrityError from the flush is left
        to the caller so it can roll back the enclosing savepoint.
        """

        existing = self.find_existing(org_address, member)
        if existing is None:
            row = OrgMember(org_address=org_address)
            self._session.add(row)
        else:
            row = existing

        for field_name in _UPDATABLE_FIELDS:
            setattr(row, field_name, getattr(member, field_name))
        for field_name in _PRESERVED_WHEN_EMPTY:
            value = getattr(member, field_name)
            if value or existing is None:
                setattr(row, field_name, value)

        self._session.flush()
        return row

    def delete_members(self, org_address: str, member_ids: Sequence[str] | None = None) -> int:
        """
        Delete the given members of the organization, or all of them when
        ``member_ids`` is None. Ids of other organizations are ignored.
        """

        stmt = delete(OrgMember).where(OrgMember.org_address == org_address)
        if member_ids is not None:
            if not member_ids:
                return 0
            stmt = stmt.where(OrgMember.id.in_(list(member_ids)))
        result = self._session.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount or 0

    def list_members(
        self,
        org_address: str,
        *,
        page: int = 1,
        limit: int = 10,
        search: str | None = None,
    ) -> tuple[Pagination, list[OrgMember]]:
        stmt: Select[tuple[OrgMember]] = select(OrgMember).where(OrgMember.org_address == org_address)

        term = (search or "").strip()
        if term:
            pattern = f"%{term.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(OrgMember.email).like(pattern),
                    func.lower(OrgMember.member_number).like(pattern),
                    func.lower(OrgMember.national_id).like(pattern),
                    func.lower(OrgMember.name).like(pattern),
                    func.lower(OrgMember.surname).like(pattern),
                    OrgMember.birth_date.like(pattern),
                )
            )

        total = int(self._session.scalar(select(func.count()).select_from(stmt.subquery())) or 0)
        stmt = (
            stmt.order_by(
                OrgMember.name.asc(),
                OrgMember.surname.asc(),
                OrgMember.email.asc(),
                OrgMember.member_number.asc(),
                OrgMember.created_at.asc(),
                OrgMember.id.asc(),
            )
            .offset(Pagination.offset(page=page, limit=limit))
            .limit(limit)
        )
        members = list(self._session.scalars(stmt).all())
        return Pagination.build(total_items=total, page=page, limit=limit), members
