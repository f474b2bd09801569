"""
Account Service Data Models

Profiles, roles, invites and session resolution models.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field


# ====================
# Enum Types
# ====================

class UserRole(str, Enum):
    """User role - the only authorization signal"""
    CLIENT = "client"
    ADMIN = "admin"


# ====================
# Core Data Models
# ====================

class UserProfile(BaseModel):
    """User profile"""
    id: str = Field(..., description="User ID (matches the auth provider id)")
    email: str = Field(..., description="Email address")
    full_name: Optional[str] = None
    role: UserRole = UserRole.CLIENT

    phone: Optional[str] = None
    company: Optional[str] = None
    address: Optional[str] = None

    # True when built from the auth record only (profile lookup timed out or failed)
    is_fallback: bool = False

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def display_name(self) -> str:
        return self.full_name or self.email.split("@")[0]


class AuthUser(BaseModel):
    """Identity record as forwarded by the auth provider"""
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None


class UserInvite(BaseModel):
    """Pending invitation"""
    email: str
    role: UserRole = UserRole.CLIENT
    invited_by: Optional[str] = None
    created_at: Optional[datetime] = None


# ====================
# Request Models
# ====================

class UpdateRoleRequest(BaseModel):
    """Change a user's role"""
    role: UserRole


class UpdateProfileRequest(BaseModel):
    """Admin edit of a user profile; only fields that are set are written"""
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    address: Optional[str] = None
    role: Optional[UserRole] = None


class InviteUserRequest(BaseModel):
    """Invite a user with a role"""
    email: EmailStr
    role: UserRole = UserRole.CLIENT


# ====================
# Response Models
# ====================

class UserListResponse(BaseModel):
    """User list"""
    users: List[UserProfile] = Field(default_factory=list)
    count: int = 0


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    service: str
    port: int
    version: str
    dependencies: Dict[str, str] = Field(default_factory=dict)


class ServiceInfo(BaseModel):
    """Service information"""
    service: str
    version: str
    description: str
    capabilities: List[str] = Field(default_factory=list)
    routes: List[str] = Field(default_factory=list)
