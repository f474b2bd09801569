"""
Shipment Service Factory

Factory for creating ShipmentService with real dependencies.
This is the ONLY module that imports concrete implementations.
"""

import logging
from typing import Optional

from core.config import AppConfig, get_settings
from core.datastore import DatastoreProtocol

from .history_ledger import HistoryLedger
from .protocols import ShipmentNotifierProtocol
from .shipment_repository import ShipmentRepository
from .shipment_service import ShipmentService

logger = logging.getLogger(__name__)


def create_shipment_service(
    datastore: DatastoreProtocol,
    config: Optional[AppConfig] = None,
    notifier: Optional[ShipmentNotifierProtocol] = None,
) -> ShipmentService:
    """
    Create ShipmentService with all real dependencies

    Args:
        datastore: Initialized datastore
        config: Optional platform config (global settings if not provided)
        notifier: Notification dispatcher (built on the same datastore if not provided)

    Returns:
        Fully initialized ShipmentService instance
    """
    config = config or get_settings()

    if notifier is None:
        from microservices.notification_service.factory import create_notification_service
        notifier = create_notification_service(datastore, config=config)

    repository = ShipmentRepository(datastore)
    ledger = HistoryLedger(
        repository,
        conditional_writes=config.ledger_conditional_writes,
        max_retries=config.ledger_max_retries,
    )

    logger.info(
        f"ShipmentService created (conditional ledger writes: {config.ledger_conditional_writes})"
    )
    return ShipmentService(
        repository=repository,
        notifier=notifier,
        ledger=ledger,
        config=config,
    )


__all__ = ["create_shipment_service"]
