"""
Support Service Protocols (Interfaces)

These interfaces define contracts for dependency injection.
NO import-time I/O dependencies - safe to import anywhere.
"""
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from core.request_context import RequestContext

from .models import SenderType, SupportTicket, TicketReply, TicketStatus


class SupportServiceError(Exception):
    """Base exception for support service errors"""
    pass


class TicketNotFoundError(SupportServiceError):
    """Ticket does not exist or could not be read"""
    pass


class TicketPersistenceError(SupportServiceError):
    """Datastore rejected a ticket or reply write"""
    pass


class TicketValidationError(SupportServiceError):
    """Ticket request validation error"""
    pass


@runtime_checkable
class SupportRepositoryProtocol(Protocol):
    """
    Interface for Support Repository.

    Implementations must provide these methods.
    Used for dependency injection to enable testing.
    """

    async def get_ticket(self, ticket_id: str) -> Optional[SupportTicket]:
        ...

    async def get_ticket_by_number(self, ticket_number: str) -> Optional[SupportTicket]:
        ...

    async def create_ticket(self, row: Dict[str, Any]) -> SupportTicket:
        ...

    async def list_user_tickets(self, user_id: str) -> List[SupportTicket]:
        ...

    async def list_tickets(self) -> List[SupportTicket]:
        ...

    async def update_status(self, ticket_id: str, status: TicketStatus) -> Optional[SupportTicket]:
        ...

    async def create_reply(
        self,
        ticket_id: str,
        sender_type: SenderType,
        sender_name: Optional[str],
        message: str,
    ) -> TicketReply:
        ...

    async def list_replies(self, ticket_id: str) -> List[TicketReply]:
        """Oldest first"""
        ...


@runtime_checkable
class TicketNotifierProtocol(Protocol):
    """Notification dispatcher as seen by the support service"""

    async def notify_ticket_reply(self, ticket: Any, reply: Any, ctx: RequestContext) -> Any:
        ...

    async def notify_ticket_created(self, ticket: Any) -> Any:
        ...

    async def notify_ticket_status_change(self, ticket: Any, ctx: RequestContext) -> Any:
        ...


__all__ = [
    "SupportServiceError",
    "TicketNotFoundError",
    "TicketPersistenceError",
    "TicketValidationError",
    "SupportRepositoryProtocol",
    "TicketNotifierProtocol",
]
