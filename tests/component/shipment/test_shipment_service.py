"""
Component Tests for ShipmentService

Real repository, ledger and notification dispatcher on the in-memory
datastore; only the email transport is mocked.
"""

import re
from unittest.mock import AsyncMock

import pytest

from core.request_context import RequestContext
from microservices.shipment_service.models import (
    ContactInfo,
    CreateShipmentRequest,
    LogEventRequest,
    ParcelDetails,
    ShipmentStatus,
    ShipmentUpdate,
)
from microservices.shipment_service.protocols import (
    ShipmentNotFoundError,
    ShipmentPersistenceError,
    ShipmentValidationError,
)
from microservices.shipment_service.shipment_repository import ShipmentRepository
from microservices.shipment_service.shipment_service import ShipmentService
from tests.fixtures import (
    ADMIN_ID,
    CLIENT_EMAIL,
    CLIENT_ID,
    RECEIVER_EMAIL,
    RECEIVER_ID,
    SECOND_ADMIN_ID,
    make_shipment_row,
)

TN = "PFX-10000001"


def create_request(sender_email=CLIENT_EMAIL, receiver_email=RECEIVER_EMAIL) -> CreateShipmentRequest:
    return CreateShipmentRequest(
        sender_info=ContactInfo(name="Ada Sender", email=sender_email, address="Lagos, Nigeria"),
        receiver_info=ContactInfo(name="Ben Receiver", email=receiver_email, address="Amsterdam, Netherlands"),
        parcel_details=ParcelDetails(description="Documents", weight=2.5, quantity=1),
        price=120,
    )


def notifications_for(datastore, user_id):
    return datastore.rows("notifications", {"user_id": user_id})


@pytest.fixture
def seeded(datastore):
    datastore.seed("shipments", make_shipment_row(tracking_number=TN))
    return datastore


class TestCreateShipment:

    @pytest.mark.asyncio
    async def test_creates_pending_unpaid_shipment(self, shipment_service, datastore):
        shipment = await shipment_service.create_shipment(create_request(), RequestContext.for_user(CLIENT_ID))

        assert re.match(r"^PFX-\d{8}$", shipment.tracking_number)
        assert shipment.user_id == CLIENT_ID
        assert shipment.status == ShipmentStatus.PENDING
        assert shipment.payment_status.value == "unpaid"
        assert shipment.current_location == "Lagos Logistics Center"
        assert len(shipment.history) == 1
        assert shipment.history[0].location == "Lagos Logistics Center"
        assert shipment.parcel_details.weight == "2.5"
        assert len(datastore.rows("shipments")) == 1

    @pytest.mark.asyncio
    async def test_new_shipment_fan_out(self, shipment_service, notification_service, datastore, email_client):
        """Sender, receiver and every admin are each notified once"""
        await shipment_service.create_shipment(create_request(), RequestContext.for_user(CLIENT_ID))
        await notification_service.emails.drain(timeout=1)

        assert [n["title"] for n in notifications_for(datastore, CLIENT_ID)] == ["Shipment Registered"]
        assert [n["title"] for n in notifications_for(datastore, RECEIVER_ID)] == ["Incoming Shipment"]
        assert [n["title"] for n in notifications_for(datastore, ADMIN_ID)] == ["New Shipment Alert"]
        assert [n["title"] for n in notifications_for(datastore, SECOND_ADMIN_ID)] == ["New Shipment Alert"]
        assert len(datastore.rows("notifications")) == 4

        recipients = sorted(m["to"] for m in email_client.sent)
        assert recipients == sorted([CLIENT_EMAIL, RECEIVER_EMAIL, "ops@perfectexpress.com", "dispatch@perfectexpress.com"])

    @pytest.mark.asyncio
    async def test_receiver_with_sender_email_not_notified(self, shipment_service, datastore):
        await shipment_service.create_shipment(
            create_request(receiver_email="A@X.COM"), RequestContext.for_user(CLIENT_ID)
        )

        assert notifications_for(datastore, RECEIVER_ID) == []
        assert len(datastore.rows("notifications")) == 3

    @pytest.mark.asyncio
    async def test_receiver_without_profile_not_notified(self, shipment_service, datastore):
        await shipment_service.create_shipment(
            create_request(receiver_email="stranger@z.com"), RequestContext.for_user(CLIENT_ID)
        )

        assert notifications_for(datastore, RECEIVER_ID) == []
        assert len(datastore.rows("notifications")) == 3

    @pytest.mark.asyncio
    async def test_impersonated_shipment_owned_by_target(self, shipment_service):
        ctx = RequestContext.impersonating(ADMIN_ID, CLIENT_ID)
        shipment = await shipment_service.create_shipment(create_request(), ctx)

        assert shipment.user_id == CLIENT_ID

    @pytest.mark.asyncio
    async def test_anonymous_rejected(self, shipment_service, datastore):
        with pytest.raises(ShipmentValidationError):
            await shipment_service.create_shipment(create_request(), RequestContext.system())
        assert datastore.rows("shipments") == []

    @pytest.mark.asyncio
    async def test_insert_failure_notifies_nobody(self, shipment_service, datastore):
        datastore.fail_on("insert", "shipments")

        with pytest.raises(ShipmentPersistenceError):
            await shipment_service.create_shipment(create_request(), RequestContext.for_user(CLIENT_ID))
        assert datastore.rows("notifications") == []


class TestUpdateShipment:

    @pytest.mark.asyncio
    async def test_admin_status_change_notifies_owner(self, shipment_service, notification_service, seeded, email_client):
        shipment = await shipment_service.update_shipment(
            TN, ShipmentUpdate(status=ShipmentStatus.IN_TRANSIT), RequestContext.for_user(ADMIN_ID)
        )
        await notification_service.emails.drain(timeout=1)

        assert shipment.status == ShipmentStatus.IN_TRANSIT
        notes = notifications_for(seeded, CLIENT_ID)
        assert len(notes) == 1
        assert notes[0]["title"] == "Shipment Updated"
        assert notes[0]["message"] == f"Your shipment {TN} is now IN-TRANSIT."
        assert notes[0]["link"] == f"/track/{TN}"
        assert email_client.subjects() == [f"PerfectExpress | Tracking Update: {TN}"]

    @pytest.mark.asyncio
    async def test_confirmed_implies_paid(self, shipment_service, seeded):
        shipment = await shipment_service.update_shipment(
            TN, {"status": "confirmed"}, RequestContext.for_user(ADMIN_ID)
        )

        assert shipment.payment_status.value == "paid"
        assert seeded.rows("shipments")[0]["payment_status"] == "paid"

    @pytest.mark.asyncio
    async def test_owner_self_update_suppressed(self, shipment_service, seeded):
        await shipment_service.update_shipment(
            TN, {"status": "cancelled"}, RequestContext.for_user(CLIENT_ID)
        )

        assert seeded.rows("notifications") == []

    @pytest.mark.asyncio
    async def test_impersonated_update_still_notifies(self, shipment_service, seeded):
        await shipment_service.update_shipment(
            TN, {"status": "held"}, RequestContext.impersonating(ADMIN_ID, CLIENT_ID)
        )

        assert len(notifications_for(seeded, CLIENT_ID)) == 1

    @pytest.mark.asyncio
    async def test_payment_received_and_reverted(self, shipment_service, seeded):
        ctx = RequestContext.for_user(ADMIN_ID)
        await shipment_service.update_shipment(TN, {"payment_status": "paid"}, ctx)
        await shipment_service.update_shipment(TN, {"payment_status": "unpaid"}, ctx)

        titles = sorted(n["title"] for n in notifications_for(seeded, CLIENT_ID))
        assert titles == ["Payment Received", "Payment Status Updated"]

    @pytest.mark.asyncio
    async def test_price_change_is_silent(self, shipment_service, seeded):
        shipment = await shipment_service.update_shipment(
            TN, {"price": 99.5}, RequestContext.for_user(ADMIN_ID)
        )

        assert shipment.price == 99.5
        assert seeded.rows("notifications") == []

    @pytest.mark.asyncio
    async def test_update_does_not_touch_history(self, shipment_service, seeded):
        await shipment_service.update_shipment(TN, {"status": "in-transit"}, RequestContext.for_user(ADMIN_ID))
        assert len(seeded.rows("shipments")[0]["history"]) == 1

    @pytest.mark.asyncio
    async def test_empty_update_rejected(self, shipment_service, seeded):
        with pytest.raises(ShipmentValidationError):
            await shipment_service.update_shipment(TN, {}, RequestContext.for_user(ADMIN_ID))

    @pytest.mark.asyncio
    async def test_invalid_status_rejected(self, shipment_service, seeded):
        with pytest.raises(ShipmentValidationError):
            await shipment_service.update_shipment(TN, {"status": "teleported"}, RequestContext.for_user(ADMIN_ID))

    @pytest.mark.asyncio
    async def test_missing_shipment(self, shipment_service):
        with pytest.raises(ShipmentNotFoundError):
            await shipment_service.update_shipment("PFX-99999999", {"status": "held"}, RequestContext.for_user(ADMIN_ID))

    @pytest.mark.asyncio
    async def test_toggle_payment(self, shipment_service, seeded):
        ctx = RequestContext.for_user(ADMIN_ID)

        first = await shipment_service.toggle_payment_status(TN, ctx)
        second = await shipment_service.toggle_payment_status(TN, ctx)

        assert first.payment_status.value == "paid"
        assert second.payment_status.value == "unpaid"


class TestShipmentEvents:

    @pytest.mark.asyncio
    async def test_movement_notifies_owner(self, shipment_service, seeded):
        result = await shipment_service.log_shipment_event(
            TN,
            LogEventRequest(status=ShipmentStatus.IN_TRANSIT, location="Lagos Hub"),
            RequestContext.for_user(ADMIN_ID),
        )

        assert result.appended is True
        notes = notifications_for(seeded, CLIENT_ID)
        assert [n["title"] for n in notes] == ["Shipment Movement"]
        assert notes[0]["message"] == f"New update for {TN}: IN-TRANSIT at Lagos Hub."

    @pytest.mark.asyncio
    async def test_duplicate_event_is_silent(self, shipment_service, seeded):
        ctx = RequestContext.for_user(ADMIN_ID)
        event = LogEventRequest(status=ShipmentStatus.IN_TRANSIT, location="Lagos Hub")

        await shipment_service.log_shipment_event(TN, event, ctx)
        result = await shipment_service.log_shipment_event(TN, event, ctx)

        assert result.appended is False
        assert len(notifications_for(seeded, CLIENT_ID)) == 1


class TestReadsAndDelete:

    @pytest.mark.asyncio
    async def test_track_shipment(self, shipment_service, seeded):
        view = await shipment_service.track_shipment(TN)

        assert view.id == TN
        assert view.sender.city == "Lagos"
        assert view.history[0].location == "Lagos Logistics Center"

    @pytest.mark.asyncio
    async def test_track_shipment_with_loose_history(self, shipment_service, datastore):
        datastore.seed("shipments", make_shipment_row(
            tracking_number="PFX-10000009",
            history=[{"state": "pending", "city": "Lagos", "timestamp": "garbage"}, "not-an-entry"],
        ))

        view = await shipment_service.track_shipment("PFX-10000009")

        assert len(view.history) == 1
        assert view.history[0].status == "pending"
        assert view.history[0].location == "Lagos"
        assert view.history[0].date == ""

    @pytest.mark.asyncio
    async def test_list_user_shipments(self, shipment_service, seeded):
        seeded.seed("shipments", make_shipment_row(tracking_number="PFX-10000002", user_id=RECEIVER_ID))

        mine = await shipment_service.list_user_shipments(RequestContext.for_user(CLIENT_ID))

        assert [s.tracking_number for s in mine] == [TN]

    @pytest.mark.asyncio
    async def test_delete(self, shipment_service, seeded):
        assert await shipment_service.delete_shipment(TN) is True

        with pytest.raises(ShipmentNotFoundError):
            await shipment_service.get_shipment(TN)
        with pytest.raises(ShipmentNotFoundError):
            await shipment_service.delete_shipment(TN)


class TestNotificationIsolation:
    """Downstream failures never undo or fail the shipment write"""

    @pytest.mark.asyncio
    async def test_notifier_exception_swallowed(self, seeded, app_config):
        notifier = AsyncMock()
        notifier.notify_on_shipment_change.side_effect = RuntimeError("notifier down")
        service = ShipmentService(ShipmentRepository(seeded), notifier, config=app_config)

        shipment = await service.update_shipment(TN, {"status": "delivered"}, RequestContext.for_user(ADMIN_ID))

        assert shipment.status == ShipmentStatus.DELIVERED
        notifier.notify_on_shipment_change.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_email_failure_keeps_in_app_notification(self, shipment_service, notification_service, seeded, email_client):
        email_client.fail_all = True

        await shipment_service.update_shipment(TN, {"status": "delivered"}, RequestContext.for_user(ADMIN_ID))
        await notification_service.emails.drain(timeout=1)

        assert len(notifications_for(seeded, CLIENT_ID)) == 1
        assert notification_service.emails.failed == 1
        assert notification_service.emails.sent == 0

    @pytest.mark.asyncio
    async def test_notification_insert_failure_swallowed(self, shipment_service, seeded):
        seeded.fail_on("insert", "notifications")

        shipment = await shipment_service.update_shipment(TN, {"status": "held"}, RequestContext.for_user(ADMIN_ID))

        assert shipment.status == ShipmentStatus.HELD
