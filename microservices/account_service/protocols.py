"""
Account Service Protocols (Interfaces)

These interfaces define contracts for dependency injection.
NO import-time I/O dependencies - safe to import anywhere.
"""
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from .models import UserInvite, UserProfile, UserRole


class AccountServiceError(Exception):
    """Base exception for account service errors"""
    pass


class ProfileNotFoundError(AccountServiceError):
    """Profile does not exist"""
    pass


class AccountPersistenceError(AccountServiceError):
    """Datastore rejected an account write"""
    pass


class AccountValidationError(AccountServiceError):
    """Account request validation error"""
    pass


@runtime_checkable
class AccountRepositoryProtocol(Protocol):
    """
    Interface for Account Repository.

    Also serves as the profile directory used by the notification dispatcher.
    """

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        """Get profile by user id"""
        ...

    async def find_profile_by_email(self, email: str) -> Optional[UserProfile]:
        """Get profile by email (case-insensitive)"""
        ...

    async def list_admins(self) -> List[UserProfile]:
        """All profiles holding the admin role"""
        ...

    async def list_profiles(self, limit: int = 100) -> List[UserProfile]:
        """Newest profiles first"""
        ...

    async def create_profile(
        self,
        user_id: str,
        email: str,
        full_name: Optional[str] = None,
        role: UserRole = UserRole.CLIENT,
    ) -> UserProfile:
        """Create a profile"""
        ...

    async def update_role(self, user_id: str, role: UserRole) -> Optional[UserProfile]:
        """Update role; None when the profile does not exist"""
        ...

    async def update_profile(self, user_id: str, fields: Dict[str, Any]) -> Optional[UserProfile]:
        """Patch profile fields; None when the profile does not exist"""
        ...

    async def upsert_invite(self, email: str, role: UserRole, invited_by: str) -> UserInvite:
        """Create or refresh an invitation"""
        ...


@runtime_checkable
class AccountDirectoryProtocol(Protocol):
    """Read-only profile lookups needed to address notifications"""

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        ...

    async def find_profile_by_email(self, email: str) -> Optional[UserProfile]:
        ...

    async def list_admins(self) -> List[UserProfile]:
        ...


__all__ = [
    "AccountServiceError",
    "ProfileNotFoundError",
    "AccountPersistenceError",
    "AccountValidationError",
    "AccountRepositoryProtocol",
    "AccountDirectoryProtocol",
]
