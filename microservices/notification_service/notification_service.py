"""
Notification Service Business Logic Layer

通知分发：应用内通知 + 邮件

Every owner-directed notification follows the self-notification suppression
rule: when the acting user is the owner and no impersonation is active,
nothing is produced. Notification and email failures are logged and never
propagated to the caller; the primary mutation has already succeeded.

Uses dependency injection for testability:
- Repository and profile directory are injected, not created at import time
- Emails go through an injected EmailDispatcher
"""

import logging
from typing import Any, List, Optional

from core.config import AppConfig
from core.datastore import DatastoreError
from core.request_context import RequestContext

from . import templates
from .email_dispatcher import EmailDispatcher
from .models import (
    DispatchResult,
    EmailContent,
    Notification,
    NotificationType,
    ShipmentChangeKind,
)
from .protocols import (
    NotificationNotFoundError,
    NotificationPersistenceError,
    NotificationRepositoryProtocol,
    NotificationValidationError,
    ReplyRecord,
    ShipmentRecord,
    TicketRecord,
)

logger = logging.getLogger(__name__)

ADMIN_SENDER = "admin"


def _value(field: Any) -> str:
    """Enum or plain string to its stored value"""
    return str(getattr(field, "value", field) or "")


def track_link(tracking_number: str) -> str:
    return f"/track/{tracking_number}"


def ticket_link(ticket_id: str) -> str:
    return f"/dashboard/tickets/{ticket_id}"


class NotificationService:
    """通知服务业务逻辑层"""

    def __init__(
        self,
        repository: NotificationRepositoryProtocol,
        directory,
        email_dispatcher: EmailDispatcher,
        config: Optional[AppConfig] = None,
    ):
        """
        Initialize notification service.

        Args:
            repository: In-app notification storage
            directory: Profile lookups (get_profile, find_profile_by_email, list_admins)
            email_dispatcher: Background email sender
            config: Platform config (brand name, public app URL)
        """
        self.repository = repository
        self.directory = directory
        self.emails = email_dispatcher
        self.config = config or AppConfig()

    @property
    def brand(self) -> str:
        return self.config.brand_name

    # ====================
    # Delivery primitives
    # ====================

    async def _deliver(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        link: Optional[str] = None,
        email_to: Optional[str] = None,
        email: Optional[EmailContent] = None,
    ) -> DispatchResult:
        """One in-app notification plus an optional email; both soft-fail independently"""
        result = DispatchResult()

        try:
            await self.repository.create_notification(
                user_id=user_id, type=type, title=title, message=message, link=link
            )
            result.notified_user_ids.append(user_id)
        except DatastoreError as e:
            logger.error(f"Notification trigger failed for {user_id}: {e}")
            result.failed_paths.append(f"in_app:{user_id}")

        if email is not None and email_to:
            if self.emails.dispatch(email_to, email) is not None:
                result.emails_queued += 1

        return result

    async def _profile(self, user_id: Optional[str]):
        if not user_id:
            return None
        try:
            return await self.directory.get_profile(user_id)
        except DatastoreError as e:
            logger.warning(f"Profile lookup for {user_id} failed: {e}")
            return None

    async def _admins(self) -> List[Any]:
        try:
            return await self.directory.list_admins()
        except DatastoreError as e:
            logger.error(f"Failed to list admins: {e}")
            return []

    # ====================
    # Shipment notifications
    # ====================

    async def notify_on_shipment_change(
        self,
        shipment: ShipmentRecord,
        change_kind: ShipmentChangeKind,
        ctx: RequestContext,
    ) -> DispatchResult:
        """Notify the shipment owner about a status, payment or movement change"""
        owner_id = shipment.user_id
        if not owner_id:
            return DispatchResult()

        if ctx.suppresses_notification_to(owner_id):
            logger.info(
                f"Notification suppressed: self-update on {shipment.tracking_number} by {ctx.acting_user_id}"
            )
            return DispatchResult(suppressed=True)

        tracking_number = shipment.tracking_number
        status = _value(shipment.status)
        kind = ShipmentChangeKind(change_kind)

        if kind == ShipmentChangeKind.STATUS_CHANGED:
            title = "Shipment Updated"
            message = f"Your shipment {tracking_number} is now {status.upper()}."
            email = templates.status_update(tracking_number, status, brand=self.brand)
        elif kind == ShipmentChangeKind.PAYMENT_RECEIVED:
            title = "Payment Received"
            message = f"Payment for shipment {tracking_number} has been verified."
            email = templates.payment_update(tracking_number, paid=True, brand=self.brand)
        elif kind == ShipmentChangeKind.PAYMENT_REVERTED:
            title = "Payment Status Updated"
            message = f"Payment for shipment {tracking_number} is marked as unpaid."
            email = templates.payment_update(tracking_number, paid=False, brand=self.brand)
        else:
            location = shipment.current_location or ""
            title = "Shipment Movement"
            message = f"New update for {tracking_number}: {status.upper()} at {location}."
            email = templates.status_update(tracking_number, status, location=location, brand=self.brand)

        profile = await self._profile(owner_id)
        return await self._deliver(
            user_id=owner_id,
            type=NotificationType.SHIPMENT_UPDATE,
            title=title,
            message=message,
            link=track_link(tracking_number),
            email_to=profile.email if profile else None,
            email=email,
        )

    async def send_new_shipment_notifications(self, shipment: ShipmentRecord) -> DispatchResult:
        """
        New-shipment fan-out: sender confirmation, receiver notice and admin alert.

        The three paths are independent; a failure in one is logged and the
        others still run.
        """
        result = DispatchResult()
        sender_profile = await self._profile(shipment.user_id)

        for path, send in (
            ("sender", self._notify_sender),
            ("receiver", self._notify_receiver),
            ("admins", self._notify_admins_of_shipment),
        ):
            try:
                result.merge(await send(shipment, sender_profile))
            except Exception as e:
                logger.error(
                    f"New shipment notification path '{path}' failed for {shipment.tracking_number}: {e}",
                    exc_info=True,
                )
                result.failed_paths.append(path)

        return result

    async def _notify_sender(self, shipment: ShipmentRecord, sender_profile) -> DispatchResult:
        if not shipment.user_id:
            return DispatchResult()

        tracking_number = shipment.tracking_number
        name = (
            (sender_profile.full_name if sender_profile else None)
            or shipment.sender_info.name
            or "Customer"
        )
        email_to = (sender_profile.email if sender_profile else None) or shipment.sender_info.email
        return await self._deliver(
            user_id=shipment.user_id,
            type=NotificationType.SHIPMENT_UPDATE,
            title="Shipment Registered",
            message=f"Your shipment {tracking_number} has been successfully created.",
            link=track_link(tracking_number),
            email_to=email_to,
            email=templates.shipment_confirmation(
                tracking_number, name, self.config.deep_link(track_link(tracking_number)), brand=self.brand
            ),
        )

    async def _notify_receiver(self, shipment: ShipmentRecord, sender_profile) -> DispatchResult:
        receiver_email = (shipment.receiver_info.email or "").strip()
        sender_email = (
            (sender_profile.email if sender_profile else None) or shipment.sender_info.email or ""
        ).strip()
        if not receiver_email or receiver_email.casefold() == sender_email.casefold():
            return DispatchResult()

        receiver = await self.directory.find_profile_by_email(receiver_email)
        if receiver is None:
            logger.debug(f"Receiver {receiver_email} of {shipment.tracking_number} has no profile")
            return DispatchResult()

        tracking_number = shipment.tracking_number
        sender_name = shipment.sender_info.name or (sender_profile.full_name if sender_profile else None) or "A customer"
        receiver_name = receiver.full_name or shipment.receiver_info.name or receiver_email
        return await self._deliver(
            user_id=receiver.id,
            type=NotificationType.SHIPMENT_UPDATE,
            title="Incoming Shipment",
            message=f"{sender_name} has created a shipment to you. Track it with {tracking_number}.",
            link=track_link(tracking_number),
            email_to=receiver_email,
            email=templates.receiver_shipment_notification(
                tracking_number,
                receiver_name,
                sender_name,
                self.config.deep_link(track_link(tracking_number)),
                brand=self.brand,
            ),
        )

    async def _notify_admins_of_shipment(self, shipment: ShipmentRecord, sender_profile) -> DispatchResult:
        tracking_number = shipment.tracking_number
        user_name = (
            (sender_profile.full_name if sender_profile else None)
            or shipment.sender_info.name
            or "A Customer"
        )
        return await self.notify_admins(
            "New Shipment Alert",
            f"A new shipment ({tracking_number}) has been submitted. Check details.",
            link="/dashboard?tab=shipments",
            email=templates.admin_new_shipment_alert(tracking_number, user_name),
        )

    # ====================
    # Admin broadcast
    # ====================

    async def notify_admins(
        self,
        title: str,
        message: str,
        link: Optional[str] = None,
        email: Optional[EmailContent] = None,
        type: NotificationType = NotificationType.SYSTEM,
    ) -> DispatchResult:
        """
        One notification (and email) per admin profile.

        Unbatched: cost grows linearly with the number of admins.
        """
        result = DispatchResult()
        for admin in await self._admins():
            result.merge(await self._deliver(
                user_id=admin.id,
                type=type,
                title=title,
                message=message,
                link=link,
                email_to=admin.email,
                email=email,
            ))
        return result

    # ====================
    # Ticket notifications
    # ====================

    async def notify_ticket_reply(
        self,
        ticket: TicketRecord,
        reply: ReplyRecord,
        ctx: RequestContext,
    ) -> DispatchResult:
        """Admin reply notifies the ticket owner; customer reply notifies every admin"""
        sender_name = reply.sender_name or "Support"
        email = templates.support_reply(ticket.ticket_number, reply.message, brand=self.brand)

        if _value(reply.sender_type) == ADMIN_SENDER:
            owner_id = ticket.user_id
            if not owner_id:
                logger.info(f"Notification skipped: ticket {ticket.ticket_number} has no owner")
                return DispatchResult()
            if ctx.suppresses_notification_to(owner_id):
                logger.info(
                    f"Notification suppressed: self-reply on {ticket.ticket_number} by {ctx.acting_user_id}"
                )
                return DispatchResult(suppressed=True)

            profile = await self._profile(owner_id)
            return await self._deliver(
                user_id=owner_id,
                type=NotificationType.TICKET_REPLY,
                title="New Support Reply",
                message=f"Agent {sender_name} replied to ticket {ticket.ticket_number}.",
                link=ticket_link(ticket.id),
                email_to=(profile.email if profile else None) or ticket.email,
                email=email,
            )

        return await self.notify_admins(
            "Customer Response",
            f"{sender_name} replied to ticket {ticket.ticket_number}.",
            link=ticket_link(ticket.id),
            email=email,
            type=NotificationType.TICKET_REPLY,
        )

    async def notify_ticket_created(self, ticket: TicketRecord) -> DispatchResult:
        return await self.notify_admins(
            "New Support Ticket",
            f"A new ticket ({ticket.ticket_number}) has been created by {ticket.name}: {ticket.subject}",
            link="/dashboard?tab=support",
            email=templates.admin_new_ticket_alert(ticket.ticket_number, ticket.name, ticket.subject),
        )

    async def notify_ticket_status_change(self, ticket: TicketRecord, ctx: RequestContext) -> DispatchResult:
        owner_id = ticket.user_id
        if not owner_id:
            return DispatchResult()
        if ctx.suppresses_notification_to(owner_id):
            logger.info(f"Notification suppressed: self status change on {ticket.ticket_number}")
            return DispatchResult(suppressed=True)

        status = _value(ticket.status)
        profile = await self._profile(owner_id)
        return await self._deliver(
            user_id=owner_id,
            type=NotificationType.TICKET_REPLY,
            title="Ticket Status Update",
            message=f"Ticket {ticket.ticket_number} status changed to {status.upper().replace('_', ' ')}.",
            link=ticket_link(ticket.id),
            email_to=(profile.email if profile else None) or ticket.email,
            email=templates.ticket_status_update(ticket.ticket_number, status, brand=self.brand),
        )

    # ====================
    # 应用内通知管理
    # ====================

    @staticmethod
    def _active_user(ctx: RequestContext) -> str:
        if not ctx.effective_user_id:
            raise NotificationValidationError("Not authenticated")
        return ctx.effective_user_id

    async def fetch_notifications(self, ctx: RequestContext, limit: int = 50) -> List[Notification]:
        """Newest first, for the effective (possibly impersonated) user"""
        user_id = self._active_user(ctx)
        try:
            return await self.repository.list_user_notifications(user_id, limit=limit)
        except DatastoreError as e:
            raise NotificationPersistenceError(f"Failed to fetch notifications: {e}") from e

    async def mark_as_read(self, notification_id: str, ctx: RequestContext) -> bool:
        user_id = self._active_user(ctx)
        try:
            updated = await self.repository.mark_as_read(notification_id, user_id)
        except DatastoreError as e:
            raise NotificationPersistenceError(f"Failed to mark notification read: {e}") from e
        if not updated:
            raise NotificationNotFoundError(f"Notification not found: {notification_id}")
        return True

    async def mark_all_as_read(self, ctx: RequestContext) -> int:
        user_id = self._active_user(ctx)
        try:
            return await self.repository.mark_all_as_read(user_id)
        except DatastoreError as e:
            raise NotificationPersistenceError(f"Failed to mark notifications read: {e}") from e

    async def get_unread_count(self, ctx: RequestContext) -> int:
        user_id = self._active_user(ctx)
        try:
            return await self.repository.get_unread_count(user_id)
        except DatastoreError as e:
            raise NotificationPersistenceError(f"Failed to count unread notifications: {e}") from e

    async def cleanup(self):
        """Drain pending emails and close the transport"""
        await self.emails.close()


__all__ = ["NotificationService", "track_link", "ticket_link"]
