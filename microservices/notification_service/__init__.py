"""
Notification Service Package

通知服务包：应用内通知与邮件分发
"""

from .email_dispatcher import EmailDispatcher
from .models import DispatchResult, Notification, NotificationType, ShipmentChangeKind
from .notification_repository import NotificationRepository
from .notification_service import NotificationService

__version__ = "1.0.0"
__all__ = [
    "NotificationService",
    "NotificationRepository",
    "EmailDispatcher",
    "DispatchResult",
    "Notification",
    "NotificationType",
    "ShipmentChangeKind",
]
