"""
db/models/org_member.py

Organization member persisted by single upserts and bulk imports.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any

from sqlalchemy import Date, ForeignKey, Index, Integer, LargeBinary, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONType, TimestampMixin


def new_member_id() -> str:
    return uuid.uuid4().hex


class OrgMember(Base, TimestampMixin):
    __tablename__ = "org_members"

    id: Mapped[str] = mapped_column(
        String(32),
        primary_key=True,
        default=new_member_id,
    )
    org_address: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("organizations.address", ondelete="CASCADE"),
        nullable=False,
    )
    member_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    national_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    surname: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    phone: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
        comment="E.164 form, e.g. +34612345678",
    )
    birth_date: Mapped[str | None] = mapped_column(
        String(10),
        nullable=True,
        comment="Normalized YYYY-MM-DD",
    )
    parsed_birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    hashed_password: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)
    weight: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    other: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)

    __table_args__ = (
        UniqueConstraint("org_address", "member_number", name="uq_org_members_member_number"),
        UniqueConstraint("org_address", "national_id", name="uq_org_members_national_id"),
        Index("ix_org_members_org_address", "org_address"),
    )

    def __repr__(self) -> str:
        return f"<OrgMember id={self.id} org={self.org_address!r} member_number={self.member_number!r}>"
