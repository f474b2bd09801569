"""
Account Service Business Logic

Profiles, roles, invites and session/profile resolution.
"""

import asyncio
import logging
from typing import List, Optional

from core.config import AppConfig
from core.datastore import DatastoreError, UniqueViolationError
from core.request_context import RequestContext

from .models import AuthUser, UpdateProfileRequest, UserInvite, UserProfile, UserRole
from .protocols import (
    AccountPersistenceError,
    AccountRepositoryProtocol,
    AccountValidationError,
    ProfileNotFoundError,
)

logger = logging.getLogger(__name__)


class AccountService:
    """
    Account management business logic service

    Handles profile resolution for incoming sessions plus the admin-side
    user management operations. Role is the only authorization signal.
    """

    def __init__(self, repository: AccountRepositoryProtocol, config: Optional[AppConfig] = None):
        self.repository = repository
        self.config = config or AppConfig()

    @property
    def session_timeout(self) -> float:
        return self.config.session_timeout_seconds

    # ====================
    # Session resolution
    # ====================

    async def resolve_profile(self, auth_user: AuthUser, ctx: Optional[RequestContext] = None) -> UserProfile:
        """
        Resolve the profile for an authenticated session.

        Looks up the effective user's profile (the impersonated user when an
        admin is impersonating) with a bounded wait. A missing profile for the
        session's own user is created as a client profile. Timeouts and
        datastore failures degrade to a fallback profile built from the auth
        record; this method never raises for them.
        """
        target_id = (ctx.effective_user_id if ctx else None) or auth_user.id

        try:
            profile = await asyncio.wait_for(
                self.repository.get_profile(target_id), timeout=self.session_timeout
            )
            if profile:
                return profile

            if target_id != auth_user.id:
                # Impersonated user has no profile; never create one on their behalf
                logger.warning(f"Impersonated user {target_id} has no profile")
                return self._fallback_profile(auth_user)

            logger.info(f"No profile for {auth_user.id}, creating one")
            return await asyncio.wait_for(
                self.repository.create_profile(
                    user_id=auth_user.id,
                    email=auth_user.email or "",
                    full_name=auth_user.full_name,
                    role=UserRole.CLIENT,
                ),
                timeout=self.session_timeout,
            )

        except asyncio.TimeoutError:
            logger.warning(
                f"Profile resolution for {target_id} exceeded {self.session_timeout}s, using fallback"
            )
            return self._fallback_profile(auth_user)
        except DatastoreError as e:
            logger.error(f"Profile resolution for {target_id} failed: {e}")
            return self._fallback_profile(auth_user)

    @staticmethod
    def _fallback_profile(auth_user: AuthUser) -> UserProfile:
        email = auth_user.email or ""
        name = auth_user.full_name or (email.split("@")[0] or "user").upper()
        return UserProfile(
            id=auth_user.id,
            email=email,
            full_name=name,
            role=UserRole.CLIENT,
            is_fallback=True,
        )

    # ====================
    # Directory
    # ====================

    async def get_profile(self, user_id: str) -> UserProfile:
        try:
            profile = await self.repository.get_profile(user_id)
        except DatastoreError as e:
            raise AccountPersistenceError(f"Failed to load profile {user_id}: {e}") from e
        if not profile:
            raise ProfileNotFoundError(f"Profile not found: {user_id}")
        return profile

    async def find_profile_by_email(self, email: str) -> Optional[UserProfile]:
        try:
            return await self.repository.find_profile_by_email(email)
        except DatastoreError as e:
            raise AccountPersistenceError(f"Failed to look up profile by email: {e}") from e

    async def list_admins(self) -> List[UserProfile]:
        try:
            return await self.repository.list_admins()
        except DatastoreError as e:
            raise AccountPersistenceError(f"Failed to list admins: {e}") from e

    # ====================
    # User management (admin)
    # ====================

    async def list_users(self, limit: int = 100) -> List[UserProfile]:
        """Newest profiles first"""
        try:
            return await self.repository.list_profiles(limit=limit)
        except DatastoreError as e:
            raise AccountPersistenceError(f"Failed to list users: {e}") from e

    async def update_user_role(self, user_id: str, role: UserRole) -> UserProfile:
        try:
            profile = await self.repository.update_role(user_id, UserRole(role))
        except DatastoreError as e:
            raise AccountPersistenceError(f"Failed to update role for {user_id}: {e}") from e
        if not profile:
            raise ProfileNotFoundError(f"Profile not found: {user_id}")
        logger.info(f"Role of {user_id} set to {profile.role.value}")
        return profile

    async def update_profile(self, user_id: str, changes: UpdateProfileRequest) -> UserProfile:
        """
        Admin edit of a profile (name, email, phone, company, address, role).

        Only the fields present in the request are written; email and role
        cannot be cleared. A taken email is a validation error.
        """
        fields = changes.model_dump(mode="json", exclude_unset=True)
        for required in ("email", "role"):
            if required in fields and fields[required] is None:
                fields.pop(required)
        if not fields:
            raise AccountValidationError("No profile fields to update")

        try:
            profile = await self.repository.update_profile(user_id, fields)
        except UniqueViolationError as e:
            raise AccountValidationError(f"Email already in use: {fields.get('email')}") from e
        except DatastoreError as e:
            raise AccountPersistenceError(f"Failed to update profile {user_id}: {e}") from e
        if not profile:
            raise ProfileNotFoundError(f"Profile not found: {user_id}")
        logger.info(f"Profile {user_id} updated: {sorted(fields)}")
        return profile

    async def invite_user(self, email: str, role: UserRole, ctx: RequestContext) -> UserInvite:
        """Create or refresh an invitation; re-inviting an email updates its role"""
        if not ctx.is_authenticated:
            raise AccountValidationError("Not authenticated")
        if not email or "@" not in email:
            raise AccountValidationError(f"Invalid email: {email!r}")

        try:
            invite = await self.repository.upsert_invite(email, UserRole(role), ctx.acting_user_id)
        except DatastoreError as e:
            raise AccountPersistenceError(f"Failed to invite {email}: {e}") from e
        logger.info(f"{ctx.acting_user_id} invited {invite.email} as {invite.role.value}")
        return invite


__all__ = ["AccountService"]
