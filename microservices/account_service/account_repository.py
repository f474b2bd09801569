"""
Account Repository

Data access layer for profiles and invites.
Emails are stored lower-cased so lookups by email are case-insensitive.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from core.datastore import DatastoreProtocol

from .models import UserInvite, UserProfile, UserRole

logger = logging.getLogger(__name__)


class AccountRepository:
    """Account data access layer"""

    def __init__(self, datastore: DatastoreProtocol):
        self.db = datastore
        self.profiles_table = "profiles"
        self.invites_table = "user_invites"

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        row = await self.db.select_one(self.profiles_table, {"id": user_id})
        return self._row_to_profile(row) if row else None

    async def find_profile_by_email(self, email: str) -> Optional[UserProfile]:
        if not email:
            return None
        row = await self.db.select_one(self.profiles_table, {"email": email.strip().lower()})
        return self._row_to_profile(row) if row else None

    async def list_admins(self) -> List[UserProfile]:
        rows = await self.db.select(self.profiles_table, {"role": UserRole.ADMIN.value})
        return [self._row_to_profile(r) for r in rows]

    async def list_profiles(self, limit: int = 100) -> List[UserProfile]:
        rows = await self.db.select(
            self.profiles_table,
            order_by="created_at",
            descending=True,
            limit=limit,
        )
        return [self._row_to_profile(r) for r in rows]

    async def create_profile(
        self,
        user_id: str,
        email: str,
        full_name: Optional[str] = None,
        role: UserRole = UserRole.CLIENT,
    ) -> UserProfile:
        now = datetime.now(timezone.utc)
        row = await self.db.insert(self.profiles_table, {
            "id": user_id,
            "email": (email or "").strip().lower(),
            "full_name": full_name,
            "role": role.value,
            "created_at": now,
            "updated_at": now,
        })
        logger.info(f"Created profile for {user_id}")
        return self._row_to_profile(row)

    async def update_role(self, user_id: str, role: UserRole) -> Optional[UserProfile]:
        rows = await self.db.update(
            self.profiles_table,
            {"id": user_id},
            {"role": role.value, "updated_at": datetime.now(timezone.utc)},
        )
        return self._row_to_profile(rows[0]) if rows else None

    async def update_profile(self, user_id: str, fields: Dict[str, Any]) -> Optional[UserProfile]:
        patch = dict(fields)
        if patch.get("email") is not None:
            patch["email"] = str(patch["email"]).strip().lower()
        if isinstance(patch.get("role"), UserRole):
            patch["role"] = patch["role"].value
        patch["updated_at"] = datetime.now(timezone.utc)
        rows = await self.db.update(self.profiles_table, {"id": user_id}, patch)
        return self._row_to_profile(rows[0]) if rows else None

    async def upsert_invite(self, email: str, role: UserRole, invited_by: str) -> UserInvite:
        row = await self.db.upsert(
            self.invites_table,
            {
                "email": email.strip().lower(),
                "role": role.value,
                "invited_by": invited_by,
                "created_at": datetime.now(timezone.utc),
            },
            conflict_columns=["email"],
        )
        return UserInvite(**row)

    @staticmethod
    def _row_to_profile(row: Dict[str, Any]) -> UserProfile:
        return UserProfile(
            id=str(row["id"]),
            email=row.get("email") or "",
            full_name=row.get("full_name"),
            role=UserRole(row.get("role") or UserRole.CLIENT.value),
            phone=row.get("phone"),
            company=row.get("company"),
            address=row.get("address"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


__all__ = ["AccountRepository"]
