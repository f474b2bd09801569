"""
Support Service

Support tickets and the reply/status workflow.
"""

from .models import SenderType, SupportTicket, TicketPriority, TicketReply, TicketStatus
from .protocols import (
    SupportServiceError,
    TicketNotFoundError,
    TicketPersistenceError,
    TicketValidationError,
)
from .support_service import SupportService

__all__ = [
    "SupportService",
    "SenderType",
    "SupportTicket",
    "TicketPriority",
    "TicketReply",
    "TicketStatus",
    "SupportServiceError",
    "TicketNotFoundError",
    "TicketPersistenceError",
    "TicketValidationError",
]
