"""
Shipment Service

Shipment creation, history ledger, mutations and tracking.
"""

from .history_ledger import HistoryLedger
from .models import (
    LedgerResult,
    PaymentStatus,
    Shipment,
    ShipmentEvent,
    ShipmentStatus,
    ShipmentUpdate,
)
from .protocols import (
    ShipmentConflictError,
    ShipmentNotFoundError,
    ShipmentPersistenceError,
    ShipmentServiceError,
    ShipmentValidationError,
)
from .shipment_service import ShipmentService

__all__ = [
    "HistoryLedger",
    "ShipmentService",
    "LedgerResult",
    "PaymentStatus",
    "Shipment",
    "ShipmentEvent",
    "ShipmentStatus",
    "ShipmentUpdate",
    "ShipmentServiceError",
    "ShipmentNotFoundError",
    "ShipmentPersistenceError",
    "ShipmentConflictError",
    "ShipmentValidationError",
]
