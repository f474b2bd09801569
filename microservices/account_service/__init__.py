"""
Account Service

Profiles, roles, invites and session/profile resolution.
"""

from .account_service import AccountService
from .models import AuthUser, UserInvite, UserProfile, UserRole
from .protocols import (
    AccountPersistenceError,
    AccountServiceError,
    AccountValidationError,
    ProfileNotFoundError,
)

__all__ = [
    "AccountService",
    "AuthUser",
    "UserInvite",
    "UserProfile",
    "UserRole",
    "AccountServiceError",
    "AccountPersistenceError",
    "AccountValidationError",
    "ProfileNotFoundError",
]
