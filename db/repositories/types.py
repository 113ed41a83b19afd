"""
Typed DTOs shared by the member and job repositories.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any


@dataclass(frozen=True)
class NormalizedMember:
    """
    A member record that passed validation.

    Email is lowercase, phone is E.164, birth date is ``YYYY-MM-DD`` and the
    password (if any) is already hashed.
    """

    member_number: str | None = None
    national_id: str | None = None
    name: str | None = None
    surname: str | None = None
    email: str | None = None
    phone: str | None = None
    birth_date: str | None = None
    parsed_birth_date: date | None = None
    hashed_password: bytes | None = None
    weight: int = 1
    other: dict[str, Any] | None = None


@dataclass(frozen=True)
class Pagination:
    total_items: int
    current_page: int
    previous_page: int | None
    next_page: int | None
    last_page: int

    @classmethod
    def build(cls, *, total_items: int, page: int, limit: int) -> "Pagination":
        last_page = max(1, -(-total_items // limit))
        return cls(
            total_items=total_items,
            current_page=page,
            previous_page=page - 1 if page > 1 else None,
            next_page=page + 1 if page < last_page else None,
            last_page=last_page,
        )

    @staticmethod
    def offset(*, page: int, limit: int) -> int:
        return (page - 1) * limit
