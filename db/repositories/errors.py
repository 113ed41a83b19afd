"""
Repository-layer exceptions for organization, member and job persistence.
"""

from __future__ import annotations


class RepositoryError(Exception):
    """Base exception for repository failures."""


class OrganizationNotFoundError(RepositoryError):
    """Raised when a referenced organization does not exist."""


class OrganizationAlreadyExistsError(RepositoryError):
    """Raised when registering an organization address that is taken."""


class MemberPersistenceError(RepositoryError):
    """Raised when a member row cannot be written."""


class UpdateWouldCreateDuplicatesError(MemberPersistenceError):
    """
    Raised when a member's number and national id identify two different
    stored members, so updating either would duplicate the other.
    """
