"""
Request-scoped actor context

Carries who is acting and on whose behalf through every service operation.
Impersonation is an explicit value here, never ambient process state.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict


class RequestContext(BaseModel):
    """
    Actor context for a single operation.

    acting_user_id: the authenticated principal performing the action
    effective_user_id: the user the action is attributed to (impersonated target or the actor)
    is_impersonating: an admin is acting as another user
    """
    model_config = ConfigDict(frozen=True)

    acting_user_id: Optional[str] = None
    effective_user_id: Optional[str] = None
    is_impersonating: bool = False
    acting_email: Optional[str] = None
    acting_name: Optional[str] = None

    @classmethod
    def system(cls) -> "RequestContext":
        """Context for background/system actions with no human actor"""
        return cls()

    @classmethod
    def for_user(
        cls,
        user_id: str,
        email: Optional[str] = None,
        name: Optional[str] = None,
    ) -> "RequestContext":
        return cls(
            acting_user_id=user_id,
            effective_user_id=user_id,
            acting_email=email,
            acting_name=name,
        )

    @classmethod
    def impersonating(cls, admin_id: str, target_user_id: str) -> "RequestContext":
        return cls(
            acting_user_id=admin_id,
            effective_user_id=target_user_id,
            is_impersonating=True,
        )

    @property
    def is_authenticated(self) -> bool:
        return self.acting_user_id is not None

    def suppresses_notification_to(self, owner_id: Optional[str]) -> bool:
        """Self-notification suppression: the owner acting on their own, unmediated"""
        if owner_id is None or self.acting_user_id is None:
            return False
        return self.acting_user_id == owner_id and not self.is_impersonating


__all__ = ["RequestContext"]
