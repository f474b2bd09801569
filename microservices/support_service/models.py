"""
Support Service Data Models

Support tickets, their append-only replies and workflow results.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field


# ====================
# Enum Types
# ====================

class TicketStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class SenderType(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


# Customer replies on these statuses put the ticket back in progress
REOPENABLE_STATUSES = frozenset({TicketStatus.RESOLVED, TicketStatus.CLOSED})


# ====================
# Core Data Models
# ====================

class SupportTicket(BaseModel):
    """Support ticket"""
    id: str
    ticket_number: str = Field(..., description="TKT-######## reference")
    user_id: Optional[str] = Field(None, description="Owner; None for guest tickets")
    name: str
    email: str
    subject: str
    status: TicketStatus = TicketStatus.OPEN
    priority: TicketPriority = TicketPriority.NORMAL
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TicketReply(BaseModel):
    """Append-only ticket message"""
    id: str
    ticket_id: str
    sender_type: SenderType
    sender_name: Optional[str] = None
    message: str
    created_at: Optional[datetime] = None


# ====================
# Request Models
# ====================

class CreateTicketRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    subject: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    priority: TicketPriority = TicketPriority.NORMAL


class AddReplyRequest(BaseModel):
    message: str = Field(..., min_length=1)
    sender_name: Optional[str] = None
    sender_type: Optional[SenderType] = Field(
        None, description="Defaults to admin for admins and customer otherwise"
    )


class UpdateTicketStatusRequest(BaseModel):
    status: TicketStatus


# ====================
# Response Models
# ====================

class CreateTicketResult(BaseModel):
    ticket: SupportTicket
    initial_reply: Optional[TicketReply] = None
    warnings: List[str] = Field(default_factory=list)


class ReplyResult(BaseModel):
    """Reply outcome; warnings carry soft failures after the reply was stored"""
    reply: TicketReply
    ticket: SupportTicket
    reopened: bool = False
    warnings: List[str] = Field(default_factory=list)


class TicketDetails(BaseModel):
    ticket: SupportTicket
    replies: List[TicketReply] = Field(default_factory=list)


class TicketListResponse(BaseModel):
    tickets: List[SupportTicket] = Field(default_factory=list)
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
