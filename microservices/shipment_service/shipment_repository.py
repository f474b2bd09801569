"""
Shipment Repository

Data access layer for shipments. Nested documents (contact info, parcel
details, coordinates, history) are stored as jsonb.
"""

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Dict, List, Optional

from core.datastore import DatastoreProtocol

from .models import Shipment

logger = logging.getLogger(__name__)


def _history_entries(history: Any) -> List[Dict[str, Any]]:
    """Stored history documents; anything that is not an entry object is skipped"""
    if not isinstance(history, (list, tuple)):
        return []
    return [entry for entry in history if isinstance(entry, Mapping)]


class ShipmentRepository:
    """Shipment data access layer"""

    def __init__(self, datastore: DatastoreProtocol):
        self.db = datastore
        self.table = "shipments"

    async def get_by_tracking_number(self, tracking_number: str) -> Optional[Shipment]:
        row = await self.db.select_one(self.table, {"tracking_number": tracking_number})
        return self._row_to_shipment(row) if row else None

    async def create_shipment(self, row: Dict[str, Any]) -> Shipment:
        stored = await self.db.insert(self.table, row)
        logger.info(f"Shipment {stored.get('tracking_number')} created")
        return self._row_to_shipment(stored)

    async def update_fields(
        self,
        tracking_number: str,
        patch: Dict[str, Any],
        expected_updated_at: Optional[datetime] = None,
        conditional: bool = False,
    ) -> Optional[Shipment]:
        filters: Dict[str, Any] = {"tracking_number": tracking_number}
        if conditional:
            filters["updated_at"] = expected_updated_at
        rows = await self.db.update(self.table, filters, patch)
        return self._row_to_shipment(rows[0]) if rows else None

    async def list_shipments(self, limit: int = 100) -> List[Shipment]:
        rows = await self.db.select(self.table, order_by="created_at", descending=True, limit=limit)
        return [self._row_to_shipment(r) for r in rows]

    async def list_user_shipments(self, user_id: str) -> List[Shipment]:
        rows = await self.db.select(
            self.table, {"user_id": user_id}, order_by="created_at", descending=True
        )
        return [self._row_to_shipment(r) for r in rows]

    async def delete_shipment(self, tracking_number: str) -> bool:
        return await self.db.delete(self.table, {"tracking_number": tracking_number}) > 0

    @staticmethod
    def _row_to_shipment(row: Dict[str, Any]) -> Shipment:
        return Shipment(
            id=str(row["id"]) if row.get("id") is not None else None,
            tracking_number=row["tracking_number"],
            user_id=str(row["user_id"]) if row.get("user_id") else None,
            status=row.get("status") or "pending",
            payment_status=row.get("payment_status") or "unpaid",
            current_location=row.get("current_location"),
            price=row.get("price"),
            sender_info=row.get("sender_info") or {},
            receiver_info=row.get("receiver_info") or {},
            parcel_details=row.get("parcel_details") or {},
            coordinates=row.get("coordinates") or None,
            history=_history_entries(row.get("history")),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


__all__ = ["ShipmentRepository"]
