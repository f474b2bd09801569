"""
Shipment Service Protocols (Interfaces)

These interfaces define contracts for dependency injection.
NO import-time I/O dependencies - safe to import anywhere.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from core.request_context import RequestContext

from .models import Shipment


class ShipmentServiceError(Exception):
    """Base exception for shipment service errors"""
    pass


class ShipmentNotFoundError(ShipmentServiceError):
    """Shipment does not exist or could not be read"""
    pass


class ShipmentPersistenceError(ShipmentServiceError):
    """Datastore rejected a shipment write"""
    pass


class ShipmentConflictError(ShipmentServiceError):
    """Concurrent writers kept invalidating a conditional history write"""
    pass


class ShipmentValidationError(ShipmentServiceError):
    """Shipment request validation error"""
    pass


@runtime_checkable
class ShipmentRepositoryProtocol(Protocol):
    """
    Interface for Shipment Repository.

    Implementations must provide these methods.
    Used for dependency injection to enable testing.
    """

    async def get_by_tracking_number(self, tracking_number: str) -> Optional[Shipment]:
        ...

    async def create_shipment(self, row: Dict[str, Any]) -> Shipment:
        ...

    async def update_fields(
        self,
        tracking_number: str,
        patch: Dict[str, Any],
        expected_updated_at: Optional[datetime] = None,
        conditional: bool = False,
    ) -> Optional[Shipment]:
        """
        Apply a field-level patch.

        With ``conditional`` the write only applies while ``updated_at`` still
        equals ``expected_updated_at``. Returns None when nothing was updated.
        """
        ...

    async def list_shipments(self, limit: int = 100) -> List[Shipment]:
        ...

    async def list_user_shipments(self, user_id: str) -> List[Shipment]:
        ...

    async def delete_shipment(self, tracking_number: str) -> bool:
        ...


@runtime_checkable
class ShipmentNotifierProtocol(Protocol):
    """Notification dispatcher as seen by the shipment service"""

    async def notify_on_shipment_change(self, shipment: Any, change_kind: Any, ctx: RequestContext) -> Any:
        ...

    async def send_new_shipment_notifications(self, shipment: Any) -> Any:
        ...


__all__ = [
    "ShipmentServiceError",
    "ShipmentNotFoundError",
    "ShipmentPersistenceError",
    "ShipmentConflictError",
    "ShipmentValidationError",
    "ShipmentRepositoryProtocol",
    "ShipmentNotifierProtocol",
]
