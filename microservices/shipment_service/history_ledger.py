"""
Shipment History Ledger

Appends deduplicated events to a shipment's history and moves the shipment's
status and current location with them. Entries already in the history are
written back exactly as they were read.

Read-then-write against the same row can lose updates under concurrent
appends. With conditional writes enabled (the default) the update is filtered
on the ``updated_at`` value that was read; when another writer got there
first the read/dedup/append cycle is retried up to ``max_retries`` times.
With conditional writes disabled the last writer wins.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from tenacity import retry, retry_if_exception_type, stop_after_attempt

from core.datastore import DatastoreError

from .models import LedgerResult, PaymentStatus, ShipmentEvent, ShipmentStatus
from .protocols import (
    ShipmentConflictError,
    ShipmentNotFoundError,
    ShipmentPersistenceError,
    ShipmentRepositoryProtocol,
)
from .shipment_utils import format_timestamp, normalize_for_comparison

logger = logging.getLogger(__name__)


def _value(field: Any) -> str:
    return str(getattr(field, "value", field) or "")


def new_history_event(
    status: Any,
    location: str,
    note: Optional[str] = None,
    at: Optional[datetime] = None,
) -> ShipmentEvent:
    """History entry stamped with an ISO timestamp and its display date/time"""
    at = at or datetime.now(timezone.utc)
    date, time = format_timestamp(at)
    return ShipmentEvent(
        status=_value(status),
        location=location,
        note=note,
        timestamp=at,
        date=date,
        time=time,
    )


def is_duplicate_event(last: Optional[ShipmentEvent], status: str, location: str) -> bool:
    """Same status and location as the last entry, after normalization"""
    if last is None:
        return False
    return (
        normalize_for_comparison(last.status) == normalize_for_comparison(status)
        and normalize_for_comparison(last.location) == normalize_for_comparison(location)
    )


class HistoryLedger:
    """Append-only shipment history"""

    def __init__(
        self,
        repository: ShipmentRepositoryProtocol,
        conditional_writes: bool = True,
        max_retries: int = 3,
    ):
        self.repository = repository
        self.conditional_writes = conditional_writes
        self.max_retries = max(0, max_retries)

    async def append_event(
        self,
        tracking_number: str,
        status: Any,
        location: str,
        note: Optional[str] = None,
    ) -> LedgerResult:
        """
        Append ``(status, location, note)`` unless it repeats the last entry.

        Confirming a shipment also marks it paid. Raises ShipmentNotFoundError
        when the shipment cannot be read, ShipmentPersistenceError when the
        write fails and ShipmentConflictError when retries are exhausted.
        """
        status = _value(status)
        attempts = 0

        @retry(
            stop=stop_after_attempt(self.max_retries + 1),
            retry=retry_if_exception_type(ShipmentConflictError),
            reraise=True,
        )
        async def _append_with_retry() -> LedgerResult:
            nonlocal attempts
            attempts += 1
            if attempts > 1:
                logger.warning(f"Concurrent update on {tracking_number}, retrying history append ({attempts})")
            return await self._try_append(tracking_number, status, location, note, attempts)

        try:
            return await _append_with_retry()
        except ShipmentConflictError:
            logger.error(f"History append on {tracking_number} gave up after {attempts} attempts")
            raise

    async def _try_append(
        self,
        tracking_number: str,
        status: str,
        location: str,
        note: Optional[str],
        attempt: int,
    ) -> LedgerResult:
        """One read/dedup/write cycle; ShipmentConflictError when another writer won"""
        try:
            shipment = await self.repository.get_by_tracking_number(tracking_number)
        except DatastoreError as e:
            logger.error(f"Error fetching shipment {tracking_number}: {e}")
            raise ShipmentNotFoundError(f"Failed to fetch shipment {tracking_number}") from e
        if shipment is None:
            raise ShipmentNotFoundError(f"Shipment not found: {tracking_number}")

        last = shipment.history[-1] if shipment.history else None
        if is_duplicate_event(last, status, location):
            logger.info(f"Skipping duplicate history entry for {tracking_number}: {status} at {location}")
            return LedgerResult(appended=False, shipment=shipment, attempts=attempt)

        now = datetime.now(timezone.utc)
        event = new_history_event(status, location, note, at=now)
        patch = {
            "status": status,
            "current_location": location,
            "history": [entry.to_stored() for entry in shipment.history] + [event.to_stored()],
            "updated_at": now,
        }
        if status == ShipmentStatus.CONFIRMED.value:
            patch["payment_status"] = PaymentStatus.PAID.value

        try:
            updated = await self.repository.update_fields(
                tracking_number,
                patch,
                expected_updated_at=shipment.updated_at,
                conditional=self.conditional_writes,
            )
        except DatastoreError as e:
            logger.error(f"Error logging event for {tracking_number}: {e}")
            raise ShipmentPersistenceError(f"Failed to log event for {tracking_number}") from e

        if updated is None:
            if not self.conditional_writes:
                raise ShipmentNotFoundError(f"Shipment not found: {tracking_number}")
            raise ShipmentConflictError(
                f"Shipment {tracking_number} changed concurrently; gave up after {attempt} attempts"
            )

        return LedgerResult(
            appended=True,
            requires_notification=bool(updated.user_id),
            shipment=updated,
            event=event,
            attempts=attempt,
        )


__all__ = ["HistoryLedger", "is_duplicate_event", "new_history_event"]
