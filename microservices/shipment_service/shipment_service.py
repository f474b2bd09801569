"""
Shipment Service Business Logic

Creation, field-level updates, history events, payment toggling and the
public tracking view. Shipment writes are hard failures; everything
downstream of a successful write (notifications, emails) is best effort.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ValidationError

from core.config import AppConfig
from core.datastore import DatastoreError
from core.request_context import RequestContext
from microservices.notification_service.models import ShipmentChangeKind

from .history_ledger import HistoryLedger, new_history_event
from .models import (
    CreateShipmentRequest,
    LedgerResult,
    LogEventRequest,
    PaymentStatus,
    Shipment,
    ShipmentEvent,
    ShipmentStatus,
    ShipmentUpdate,
    TrackingView,
)
from .protocols import (
    ShipmentNotFoundError,
    ShipmentNotifierProtocol,
    ShipmentPersistenceError,
    ShipmentRepositoryProtocol,
    ShipmentValidationError,
)
from .shipment_utils import generate_tracking_number, initial_location, map_shipment_row

logger = logging.getLogger(__name__)

CREATION_NOTE = "Shipment created and processing at origin facility."


class ShipmentService:
    """
    Shipment business logic service

    Applies the payment rule (confirmed => paid) on every status write and
    hands successful mutations to the notification dispatcher with the
    caller's request context.
    """

    def __init__(
        self,
        repository: ShipmentRepositoryProtocol,
        notifier: ShipmentNotifierProtocol,
        ledger: Optional[HistoryLedger] = None,
        config: Optional[AppConfig] = None,
    ):
        self.repository = repository
        self.notifier = notifier
        self.config = config or AppConfig()
        self.ledger = ledger or HistoryLedger(
            repository,
            conditional_writes=self.config.ledger_conditional_writes,
            max_retries=self.config.ledger_max_retries,
        )

    # ====================
    # Creation
    # ====================

    async def create_shipment(self, data: CreateShipmentRequest, ctx: RequestContext) -> Shipment:
        """Create a pending, unpaid shipment owned by the effective user"""
        if not ctx.effective_user_id:
            raise ShipmentValidationError("You must be logged in to create a shipment")

        tracking_number = generate_tracking_number()
        location = initial_location(data.sender_info.address)
        now = datetime.now(timezone.utc)
        created_event = new_history_event(ShipmentStatus.PENDING, location, CREATION_NOTE, at=now)

        row = {
            "tracking_number": tracking_number,
            "user_id": ctx.effective_user_id,
            "status": ShipmentStatus.PENDING.value,
            "payment_status": PaymentStatus.UNPAID.value,
            "current_location": location,
            "price": data.price,
            "sender_info": data.sender_info.model_dump(mode="json"),
            "receiver_info": data.receiver_info.model_dump(mode="json"),
            "parcel_details": data.parcel_details.model_dump(mode="json"),
            "coordinates": data.coordinates.model_dump(mode="json") if data.coordinates else None,
            "history": [created_event.to_stored()],
            "created_at": now,
            "updated_at": now,
        }

        try:
            shipment = await self.repository.create_shipment(row)
        except DatastoreError as e:
            # Includes tracking number collisions; never retried here
            logger.error(f"Error creating shipment {tracking_number}: {e}")
            raise ShipmentPersistenceError(f"Failed to create shipment: {e}") from e

        await self._notify("new shipment", self.notifier.send_new_shipment_notifications(shipment))
        return shipment

    # ====================
    # Reads
    # ====================

    async def get_shipment(self, tracking_number: str) -> Shipment:
        try:
            shipment = await self.repository.get_by_tracking_number(tracking_number)
        except DatastoreError as e:
            raise ShipmentNotFoundError(f"Failed to fetch shipment {tracking_number}") from e
        if shipment is None:
            raise ShipmentNotFoundError(f"Shipment not found: {tracking_number}")
        return shipment

    async def track_shipment(self, tracking_number: str) -> TrackingView:
        """Display mapping for the public tracking page"""
        shipment = await self.get_shipment(tracking_number)
        return map_shipment_row(shipment.model_dump())

    async def list_shipments(self, limit: int = 100) -> List[Shipment]:
        """All shipments, newest first (admin)"""
        try:
            return await self.repository.list_shipments(limit=limit)
        except DatastoreError as e:
            raise ShipmentPersistenceError(f"Failed to list shipments: {e}") from e

    async def list_user_shipments(self, ctx: RequestContext) -> List[Shipment]:
        if not ctx.effective_user_id:
            raise ShipmentValidationError("Not authenticated")
        try:
            return await self.repository.list_user_shipments(ctx.effective_user_id)
        except DatastoreError as e:
            raise ShipmentPersistenceError(f"Failed to list shipments: {e}") from e

    # ====================
    # Mutations
    # ====================

    async def update_shipment(
        self,
        tracking_number: str,
        fields: Union[ShipmentUpdate, Mapping[str, Any]],
        ctx: RequestContext,
    ) -> Shipment:
        """
        Field-level update.

        Setting status to confirmed also sets payment to paid. A change to
        status or payment notifies the owner unless they made it themselves.
        """
        if not isinstance(fields, BaseModel):
            try:
                fields = ShipmentUpdate.model_validate(dict(fields))
            except ValidationError as e:
                raise ShipmentValidationError(str(e)) from e

        changes: Dict[str, Any] = fields.model_dump(mode="json", exclude_unset=True)
        for key in ("status", "payment_status"):
            if key in changes and changes[key] is None:
                changes.pop(key)
        if not changes:
            raise ShipmentValidationError("No fields to update")

        if changes.get("status") == ShipmentStatus.CONFIRMED.value:
            changes["payment_status"] = PaymentStatus.PAID.value
        changes["updated_at"] = datetime.now(timezone.utc)

        try:
            shipment = await self.repository.update_fields(tracking_number, changes)
        except DatastoreError as e:
            logger.error(f"Error updating shipment {tracking_number}: {e}")
            raise ShipmentPersistenceError(f"Failed to update shipment: {e}") from e
        if shipment is None:
            raise ShipmentNotFoundError(f"Shipment not found: {tracking_number}")

        if "status" in changes:
            kind = ShipmentChangeKind.STATUS_CHANGED
        elif changes.get("payment_status") == PaymentStatus.PAID.value:
            kind = ShipmentChangeKind.PAYMENT_RECEIVED
        elif "payment_status" in changes:
            kind = ShipmentChangeKind.PAYMENT_REVERTED
        else:
            kind = None

        if kind is not None:
            await self._notify(
                kind.value, self.notifier.notify_on_shipment_change(shipment, kind, ctx)
            )
        return shipment

    async def log_shipment_event(
        self,
        tracking_number: str,
        event: Union[LogEventRequest, ShipmentEvent],
        ctx: RequestContext,
    ) -> LedgerResult:
        """Append a history event and announce the movement to the owner"""
        result = await self.ledger.append_event(
            tracking_number, event.status, event.location, note=event.note
        )
        if result.requires_notification:
            await self._notify(
                "movement",
                self.notifier.notify_on_shipment_change(
                    result.shipment, ShipmentChangeKind.MOVEMENT, ctx
                ),
            )
        return result

    async def toggle_payment_status(self, tracking_number: str, ctx: RequestContext) -> Shipment:
        shipment = await self.get_shipment(tracking_number)
        new_status = (
            PaymentStatus.UNPAID if shipment.payment_status == PaymentStatus.PAID else PaymentStatus.PAID
        )
        return await self.update_shipment(
            tracking_number, ShipmentUpdate(payment_status=new_status), ctx
        )

    async def delete_shipment(self, tracking_number: str) -> bool:
        try:
            deleted = await self.repository.delete_shipment(tracking_number)
        except DatastoreError as e:
            logger.error(f"Error deleting shipment {tracking_number}: {e}")
            raise ShipmentPersistenceError(f"Failed to delete shipment: {e}") from e
        if not deleted:
            raise ShipmentNotFoundError(f"Shipment not found: {tracking_number}")
        logger.info(f"Shipment {tracking_number} deleted")
        return True

    async def _notify(self, label: str, dispatch) -> Optional[Any]:
        try:
            return await dispatch
        except Exception as e:
            logger.error(f"Notification trigger failed ({label}): {e}", exc_info=True)
            return None


__all__ = ["ShipmentService"]
