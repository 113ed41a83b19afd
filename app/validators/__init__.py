"""
app/validators package marker.
"""

from app.validators.member_validator import (
    MemberRecordValidator,
    hash_password,
    normalize_phone,
    parse_birth_date,
)

__all__ = [
    "MemberRecordValidator",
    "hash_password",
    "normalize_phone",
    "parse_birth_date",
]
