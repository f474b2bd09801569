"""
Support Service Business Logic

Ticket creation and the reply/status workflow. A customer reply to a resolved
or closed ticket puts it back in progress. Ticket and reply writes are hard
failures; the reopen write and all notifications after a stored reply are
soft failures reported as warnings.
"""

import logging
from typing import Any, List, Optional

from core.config import AppConfig
from core.datastore import DatastoreError
from core.request_context import RequestContext
from microservices.shipment_service.shipment_utils import TICKET_PREFIX, generate_ticket_number

from .models import (
    REOPENABLE_STATUSES,
    CreateTicketRequest,
    CreateTicketResult,
    ReplyResult,
    SenderType,
    SupportTicket,
    TicketDetails,
    TicketPriority,
    TicketStatus,
)
from .protocols import (
    SupportRepositoryProtocol,
    TicketNotFoundError,
    TicketNotifierProtocol,
    TicketPersistenceError,
    TicketValidationError,
)

logger = logging.getLogger(__name__)


class SupportService:
    """Support ticket workflow"""

    def __init__(
        self,
        repository: SupportRepositoryProtocol,
        notifier: TicketNotifierProtocol,
        config: Optional[AppConfig] = None,
    ):
        self.repository = repository
        self.notifier = notifier
        self.config = config or AppConfig()

    async def _resolve_ticket(self, ticket_ref: str) -> SupportTicket:
        """Look up a ticket by id or by TKT- number"""
        ref = (ticket_ref or "").strip()
        if not ref:
            raise TicketNotFoundError("Ticket reference is empty")
        try:
            if ref.upper().startswith(f"{TICKET_PREFIX}-"):
                ticket = await self.repository.get_ticket_by_number(ref.upper())
            else:
                ticket = await self.repository.get_ticket(ref)
        except DatastoreError as e:
            logger.error(f"Error fetching ticket {ref}: {e}")
            raise TicketNotFoundError(f"Failed to fetch ticket {ref}") from e
        if ticket is None:
            raise TicketNotFoundError(f"Ticket not found: {ref}")
        return ticket

    # ====================
    # Creation
    # ====================

    async def create_ticket(self, data: CreateTicketRequest, ctx: RequestContext) -> CreateTicketResult:
        """Open a ticket (guests allowed), store the first message and alert admins"""
        ticket_number = generate_ticket_number()
        try:
            ticket = await self.repository.create_ticket({
                "ticket_number": ticket_number,
                "user_id": ctx.effective_user_id,
                "name": data.name,
                "email": str(data.email),
                "subject": data.subject,
                "status": TicketStatus.OPEN.value,
                "priority": TicketPriority(data.priority).value,
            })
        except DatastoreError as e:
            logger.error(f"Error creating ticket {ticket_number}: {e}")
            raise TicketPersistenceError(f"Failed to create ticket: {e}") from e

        result = CreateTicketResult(ticket=ticket)
        try:
            result.initial_reply = await self.repository.create_reply(
                ticket.id, SenderType.CUSTOMER, data.name, data.message
            )
        except DatastoreError as e:
            logger.error(f"Error creating initial reply for {ticket.ticket_number}: {e}")
            result.warnings.append("Ticket created but the initial message could not be saved")

        await self._notify("ticket created", self.notifier.notify_ticket_created(ticket))
        logger.info(f"Ticket {ticket.ticket_number} opened by {ctx.effective_user_id or 'guest'}")
        return result

    # ====================
    # Reads
    # ====================

    async def get_user_tickets(self, ctx: RequestContext) -> List[SupportTicket]:
        if not ctx.effective_user_id:
            raise TicketValidationError("Not authenticated")
        try:
            return await self.repository.list_user_tickets(ctx.effective_user_id)
        except DatastoreError as e:
            raise TicketPersistenceError(f"Failed to list tickets: {e}") from e

    async def get_all_tickets(self) -> List[SupportTicket]:
        try:
            return await self.repository.list_tickets()
        except DatastoreError as e:
            raise TicketPersistenceError(f"Failed to list tickets: {e}") from e

    async def get_ticket(self, ticket_ref: str) -> SupportTicket:
        return await self._resolve_ticket(ticket_ref)

    async def get_ticket_details(self, ticket_ref: str) -> TicketDetails:
        """Ticket plus its replies, oldest first"""
        ticket = await self._resolve_ticket(ticket_ref)
        try:
            replies = await self.repository.list_replies(ticket.id)
        except DatastoreError as e:
            raise TicketPersistenceError(f"Failed to load replies for {ticket.ticket_number}: {e}") from e
        return TicketDetails(ticket=ticket, replies=replies)

    # ====================
    # Workflow
    # ====================

    async def add_reply(
        self,
        ticket_ref: str,
        message: str,
        sender_type: SenderType,
        sender_name: Optional[str],
        ctx: RequestContext,
    ) -> ReplyResult:
        """
        Store a reply, reopen on customer reply and notify the other party.

        Nothing is written when the ticket does not exist. A failed reply
        insert aborts everything; a failed reopen is returned as a warning.
        """
        if not message or not message.strip():
            raise TicketValidationError("Reply message is empty")
        sender_type = SenderType(sender_type)

        ticket = await self._resolve_ticket(ticket_ref)

        try:
            reply = await self.repository.create_reply(ticket.id, sender_type, sender_name, message)
        except DatastoreError as e:
            logger.error(f"Error adding reply to {ticket.ticket_number}: {e}")
            raise TicketPersistenceError(f"Failed to add reply: {e}") from e

        result = ReplyResult(reply=reply, ticket=ticket)

        if sender_type == SenderType.CUSTOMER and ticket.status in REOPENABLE_STATUSES:
            try:
                reopened = await self.repository.update_status(ticket.id, TicketStatus.IN_PROGRESS)
            except DatastoreError as e:
                reopened = None
                logger.error(f"Failed to reopen ticket {ticket.ticket_number}: {e}")
            if reopened is not None:
                result.ticket = reopened
                result.reopened = True
                logger.info(f"Ticket {ticket.ticket_number} reopened by customer reply")
            else:
                result.warnings.append(
                    f"Reply saved but ticket {ticket.ticket_number} could not be reopened"
                )

        await self._notify("ticket reply", self.notifier.notify_ticket_reply(result.ticket, reply, ctx))
        return result

    async def update_ticket_status(
        self,
        ticket_ref: str,
        status: TicketStatus,
        ctx: RequestContext,
    ) -> SupportTicket:
        ticket = await self._resolve_ticket(ticket_ref)
        try:
            updated = await self.repository.update_status(ticket.id, TicketStatus(status))
        except DatastoreError as e:
            logger.error(f"Error updating ticket {ticket.ticket_number}: {e}")
            raise TicketPersistenceError(f"Failed to update ticket status: {e}") from e
        if updated is None:
            raise TicketNotFoundError(f"Ticket not found: {ticket_ref}")

        await self._notify(
            "ticket status", self.notifier.notify_ticket_status_change(updated, ctx)
        )
        return updated

    async def _notify(self, label: str, dispatch) -> Optional[Any]:
        try:
            return await dispatch
        except Exception as e:
            logger.error(f"Notification trigger failed ({label}): {e}", exc_info=True)
            return None


__all__ = ["SupportService"]
