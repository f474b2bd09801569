"""
Notification Service Factory

Factory functions for creating service instances with real dependencies.
This is the ONLY place that imports I/O-dependent modules.

Usage:
    from .factory import create_notification_service
    service = create_notification_service(datastore)
"""
import logging
from typing import Optional

from core.config import AppConfig, get_settings
from core.datastore import DatastoreProtocol

from .email_dispatcher import EmailDispatcher
from .notification_service import NotificationService
from .protocols import EmailClientProtocol

logger = logging.getLogger(__name__)


def create_notification_service(
    datastore: DatastoreProtocol,
    config: Optional[AppConfig] = None,
    email_client: Optional[EmailClientProtocol] = None,
) -> NotificationService:
    """
    Create NotificationService with real dependencies.

    Args:
        datastore: Initialized datastore shared with the other services
        config: Platform config (global settings if not provided)
        email_client: Email transport (Resend or log-only, from config, if not provided)

    Returns:
        Configured NotificationService instance
    """
    # Import real repository and clients here (not at module level)
    from microservices.account_service.account_repository import AccountRepository
    from .clients import create_email_client
    from .notification_repository import NotificationRepository

    config = config or get_settings()
    repository = NotificationRepository(datastore)
    directory = AccountRepository(datastore)
    dispatcher = EmailDispatcher(email_client or create_email_client(config.email))

    logger.info("NotificationService created with real dependencies")
    return NotificationService(
        repository=repository,
        directory=directory,
        email_dispatcher=dispatcher,
        config=config,
    )


__all__ = ["create_notification_service"]
