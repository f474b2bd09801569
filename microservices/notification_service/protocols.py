"""
Notification Service Protocols (Interfaces)

These interfaces define contracts for dependency injection.
NO import-time I/O dependencies - safe to import anywhere.

The dispatcher reads shipments, tickets and replies through the attribute
protocols below so it never imports the services that own those records.
"""
from typing import Any, List, Optional, Protocol, runtime_checkable

from .models import Notification, NotificationType


class NotificationServiceError(Exception):
    """Base exception for notification service errors"""
    pass


class NotificationNotFoundError(NotificationServiceError):
    """Notification resource not found"""
    pass


class NotificationValidationError(NotificationServiceError):
    """Notification data validation error"""
    pass


class NotificationPersistenceError(NotificationServiceError):
    """Datastore rejected a notification read or write"""
    pass


class EmailDeliveryError(NotificationServiceError):
    """Email transport rejected a message"""
    pass


# ====================
# Records the dispatcher announces
# ====================

class ContactRecord(Protocol):
    name: Optional[str]
    email: Optional[str]


class ShipmentRecord(Protocol):
    tracking_number: str
    user_id: Optional[str]
    status: Any
    payment_status: Any
    current_location: Optional[str]
    sender_info: ContactRecord
    receiver_info: ContactRecord


class TicketRecord(Protocol):
    id: str
    ticket_number: str
    user_id: Optional[str]
    name: str
    email: str
    subject: str
    status: Any


class ReplyRecord(Protocol):
    sender_type: Any
    sender_name: Optional[str]
    message: str


# ====================
# Dependencies
# ====================

@runtime_checkable
class NotificationRepositoryProtocol(Protocol):
    """
    Interface for Notification Repository.

    Implementations must provide these methods.
    Used for dependency injection to enable testing.
    """

    async def create_notification(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        link: Optional[str] = None,
    ) -> Notification:
        """Insert an unread in-app notification"""
        ...

    async def list_user_notifications(self, user_id: str, limit: int = 50) -> List[Notification]:
        """Newest first"""
        ...

    async def mark_as_read(self, notification_id: str, user_id: str) -> bool:
        """Mark one notification read; False when it does not belong to the user"""
        ...

    async def mark_all_as_read(self, user_id: str) -> int:
        """Mark every unread notification read; returns the number updated"""
        ...

    async def get_unread_count(self, user_id: str) -> int:
        ...


@runtime_checkable
class EmailClientProtocol(Protocol):
    """Interface for the outbound email transport"""

    async def send(self, to: str, subject: str, text: str, html: Optional[str] = None) -> Optional[str]:
        """Send one email; returns the provider message id when available"""
        ...

    async def close(self) -> None:
        ...


__all__ = [
    "NotificationServiceError",
    "NotificationNotFoundError",
    "NotificationValidationError",
    "NotificationPersistenceError",
    "EmailDeliveryError",
    "ContactRecord",
    "ShipmentRecord",
    "TicketRecord",
    "ReplyRecord",
    "NotificationRepositoryProtocol",
    "EmailClientProtocol",
]
