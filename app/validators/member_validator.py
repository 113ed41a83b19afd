"""
app/validators/member_validator.py

Validation and normalization of one raw member record.
"""

from __future__ import annotations

import hashlib
import re
from datetime import date
from typing import Any

import phonenumbers
from email_validator import EmailNotValidError, validate_email

from app.domain.member_import import MemberRecordInput, NormalizedMember

_DATE_SEPARATORS = re.compile(r"[^0-9]+")

# scrypt cost parameters; changing them invalidates every stored hash.
_SCRYPT_N = 2**14
_SCRYPT_R = 8
_SCRYPT_P = 1
_SCRYPT_DKLEN = 32


def hash_password(password: str, salt: str) -> bytes:
    return hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=_SCRYPT_N,
        r=_SCRYPT_R,
        p=_SCRYPT_P,
        dklen=_SCRYPT_DKLEN,
    )


def parse_birth_date(value: str) -> tuple[date, str]:
    """
    Parse a birth date written year-first (``1990-05-17``) or day-first
    (``17/05/1990``) with any non-digit separators.

    Returns the date and its ``YYYY-MM-DD`` rendering, raises ValueError
    for anything else, including impossible calendar dates.
    """

    parts = [part for part in _DATE_SEPARATORS.split(value.strip()) if part]
    if len(parts) != 3:
        raise ValueError(value)

    if len(parts[0]) == 4:
        year, month, day = (int(part) for part in parts)
    elif len(parts[2]) == 4:
        day, month, year = (int(part) for part in parts)
    else:
        raise ValueError(value)

    parsed = date(year, month, day)
    return parsed, parsed.isoformat()


def normalize_phone(value: str, region: str) -> str:
    """
    Return the number as ``+<country code><national number>``.
    """

    try:
        parsed = phonenumbers.parse(value, region)
    except phonenumbers.NumberParseException as exc:
        raise ValueError(value) from exc
    if not phonenumbers.is_valid_number(parsed):
        raise ValueError(value)
    return f"+{parsed.country_code}{parsed.national_number}"


class MemberRecordValidator:
    """
    Validates one record and returns either a normalized member or a single
    error string listing every failing field of that record.
    """

    def validate(
        self,
        record: MemberRecordInput,
        *,
        salt: str,
        default_country: str,
    ) -> tuple[NormalizedMember | None, str | None]:
        problems: list[str] = []

        member_number = self._text(record.member_number, "member_number", problems)
        national_id = self._text(record.national_id, "national_id", problems)
        if self._clean(record.member_number) is None and self._clean(record.national_id) is None:
            problems.append("missing member_number and national_id")
        name = self._text(record.name, "name", problems)
        surname = self._text(record.surname, "surname", problems)

        email = self._parse_email(self._text(record.email, "email", problems), problems)
        phone = self._parse_phone(self._text(record.phone, "phone", problems), default_country, problems)
        parsed_birth_date, birth_date = self._parse_birth_date(
            self._text(record.birth_date, "birth date", problems), problems
        )
        weight = self._parse_weight(record.weight, problems)
        password = self._text(record.password, "password", problems)

        if problems:
            return None, f"{record.label}: " + "; ".join(problems)

        return (
            NormalizedMember(
                member_number=member_number,
                national_id=national_id,
                name=name,
                surname=surname,
                email=email,
                phone=phone,
                birth_date=birth_date,
                parsed_birth_date=parsed_birth_date,
                hashed_password=hash_password(password, salt) if password else None,
                weight=weight,
                other=record.other or None,
            ),
            None,
        )

    def _parse_email(self, raw: str | None, problems: list[str]) -> str | None:
        if raw is None:
            return None
        try:
            result = validate_email(raw, check_deliverability=False)
        except EmailNotValidError:
            problems.append(f'invalid email "{raw}"')
            return None
        return result.normalized.lower()

    def _parse_phone(self, raw: str | None, region: str, problems: list[str]) -> str | None:
        if raw is None:
            return None
        try:
            return normalize_phone(raw, region)
        except ValueError:
            problems.append(f'invalid phone "{raw}"')
            return None

    def _parse_birth_date(self, raw: str | None, problems: list[str]) -> tuple[date | None, str | None]:
        if raw is None:
            return None, None
        try:
            return parse_birth_date(raw)
        except ValueError:
            problems.append(f'invalid birth date "{raw}"')
            return None, None

    def _parse_weight(self, value: Any, problems: list[str]) -> int:
        if isinstance(value, str):
            value = self._text(value, "weight", problems)
        if value is None:
            return 1
        if isinstance(value, bool):
            problems.append(f'invalid weight "{value}"')
            return 1
        try:
            weight = int(str(value).strip())
        except ValueError:
            problems.append(f'invalid weight "{value}"')
            return 1
        if weight < 1:
            problems.append(f'invalid weight "{value}"')
            return 1
        return weight

    @staticmethod
    def _clean(value: Any) -> str | None:
        if value is None:
            return None
        stripped = str(value).strip()
        return stripped or None

    @classmethod
    def _text(cls, value: Any, field_name: str, problems: list[str]) -> str | None:
        # Lone surrogates survive JSON decoding but cannot be stored or hashed.
        cleaned = cls._clean(value)
        if cleaned is None:
            return None
        try:
            cleaned.encode("utf-8")
        except UnicodeEncodeError:
            problems.append(f"invalid {field_name}: not valid UTF-8 text")
            return None
        return cleaned
