"""
Support Repository

Data access layer for support tickets and replies.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from core.datastore import DatastoreProtocol

from .models import SenderType, SupportTicket, TicketReply, TicketStatus

logger = logging.getLogger(__name__)


class SupportRepository:
    """Ticket data access layer"""

    def __init__(self, datastore: DatastoreProtocol):
        self.db = datastore
        self.tickets_table = "support_tickets"
        self.replies_table = "ticket_replies"

    async def get_ticket(self, ticket_id: str) -> Optional[SupportTicket]:
        row = await self.db.select_one(self.tickets_table, {"id": ticket_id})
        return SupportTicket(**row) if row else None

    async def get_ticket_by_number(self, ticket_number: str) -> Optional[SupportTicket]:
        row = await self.db.select_one(self.tickets_table, {"ticket_number": ticket_number})
        return SupportTicket(**row) if row else None

    async def create_ticket(self, row: Dict[str, Any]) -> SupportTicket:
        now = datetime.now(timezone.utc)
        stored = await self.db.insert(self.tickets_table, {
            "id": str(uuid.uuid4()),
            "created_at": now,
            "updated_at": now,
            **row,
        })
        return SupportTicket(**stored)

    async def list_user_tickets(self, user_id: str) -> List[SupportTicket]:
        rows = await self.db.select(
            self.tickets_table, {"user_id": user_id}, order_by="created_at", descending=True
        )
        return [SupportTicket(**r) for r in rows]

    async def list_tickets(self) -> List[SupportTicket]:
        rows = await self.db.select(self.tickets_table, order_by="created_at", descending=True)
        return [SupportTicket(**r) for r in rows]

    async def update_status(self, ticket_id: str, status: TicketStatus) -> Optional[SupportTicket]:
        rows = await self.db.update(
            self.tickets_table,
            {"id": ticket_id},
            {"status": TicketStatus(status).value, "updated_at": datetime.now(timezone.utc)},
        )
        return SupportTicket(**rows[0]) if rows else None

    async def create_reply(
        self,
        ticket_id: str,
        sender_type: SenderType,
        sender_name: Optional[str],
        message: str,
    ) -> TicketReply:
        row = await self.db.insert(self.replies_table, {
            "id": str(uuid.uuid4()),
            "ticket_id": ticket_id,
            "sender_type": SenderType(sender_type).value,
            "sender_name": sender_name,
            "message": message,
            "created_at": datetime.now(timezone.utc),
        })
        return TicketReply(**row)

    async def list_replies(self, ticket_id: str) -> List[TicketReply]:
        rows = await self.db.select(self.replies_table, {"ticket_id": ticket_id}, order_by="created_at")
        return [TicketReply(**r) for r in rows]


__all__ = ["SupportRepository"]
