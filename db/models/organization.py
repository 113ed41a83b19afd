"""
db/models/organization.py

Organization model: the owning scope of members and import jobs.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class Organization(Base, TimestampMixin):
    """
    Tenant boundary. Members and import jobs are keyed by ``address``.

    ``country`` is the default region used to interpret member phone numbers
    written without an international prefix.
    """

    __tablename__ = "organizations"

    address: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
    )
    country: Mapped[str | None] = mapped_column(
        String(2),
        nullable=True,
        comment="ISO-3166 alpha-2 code",
    )

    def __repr__(self) -> str:
        return f"<Organization address={self.address!r} name={self.name!r}>"
