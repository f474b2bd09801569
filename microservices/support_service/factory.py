"""
Support Service Factory

Factory for creating SupportService with real dependencies.
This is the ONLY module that imports concrete implementations.
"""

import logging
from typing import Optional

from core.config import AppConfig, get_settings
from core.datastore import DatastoreProtocol

from .protocols import TicketNotifierProtocol
from .support_repository import SupportRepository
from .support_service import SupportService

logger = logging.getLogger(__name__)


def create_support_service(
    datastore: DatastoreProtocol,
    config: Optional[AppConfig] = None,
    notifier: Optional[TicketNotifierProtocol] = None,
) -> SupportService:
    """
    Create SupportService with all real dependencies

    Args:
        datastore: Initialized datastore
        config: Optional platform config (global settings if not provided)
        notifier: Notification dispatcher (built on the same datastore if not provided)

    Returns:
        Fully initialized SupportService instance
    """
    config = config or get_settings()

    if notifier is None:
        from microservices.notification_service.factory import create_notification_service
        notifier = create_notification_service(datastore, config=config)

    logger.info("SupportService created with real dependencies")
    return SupportService(
        repository=SupportRepository(datastore),
        notifier=notifier,
        config=config,
    )


__all__ = ["create_support_service"]
