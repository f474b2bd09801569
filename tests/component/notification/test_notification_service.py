"""
Component Tests for NotificationService

Dispatch rules (recipients, suppression, soft failures) and the in-app
notification API.
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from core.request_context import RequestContext
from microservices.notification_service.models import NotificationType, ShipmentChangeKind
from microservices.notification_service.protocols import (
    NotificationNotFoundError,
    NotificationValidationError,
)
from microservices.shipment_service.models import Shipment
from microservices.support_service.models import SupportTicket, TicketReply
from tests.fixtures import (
    BASE_TIME,
    ADMIN_ID,
    CLIENT_EMAIL,
    CLIENT_ID,
    RECEIVER_ID,
    SECOND_ADMIN_ID,
    make_reply_row,
    make_shipment_row,
    make_ticket_row,
)


def shipment(**overrides) -> Shipment:
    return Shipment(**make_shipment_row(**overrides))


def ticket(**overrides) -> SupportTicket:
    return SupportTicket(**make_ticket_row(**overrides))


def reply(ticket_id, **overrides) -> TicketReply:
    return TicketReply(**make_reply_row(ticket_id, **overrides))


class TestShipmentChange:

    @pytest.mark.asyncio
    async def test_status_change_to_owner(self, notification_service, datastore):
        result = await notification_service.notify_on_shipment_change(
            shipment(status="delivered"), ShipmentChangeKind.STATUS_CHANGED, RequestContext.for_user(ADMIN_ID)
        )

        assert result.notified_user_ids == [CLIENT_ID]
        assert result.emails_queued == 1
        row = datastore.rows("notifications")[0]
        assert row["type"] == NotificationType.SHIPMENT_UPDATE.value
        assert row["is_read"] is False

    @pytest.mark.asyncio
    async def test_self_change_suppressed(self, notification_service, datastore):
        result = await notification_service.notify_on_shipment_change(
            shipment(), ShipmentChangeKind.PAYMENT_RECEIVED, RequestContext.for_user(CLIENT_ID)
        )

        assert result.suppressed is True
        assert result.notification_count == 0
        assert datastore.rows("notifications") == []

    @pytest.mark.asyncio
    async def test_unowned_shipment(self, notification_service, datastore):
        result = await notification_service.notify_on_shipment_change(
            shipment(user_id=None), ShipmentChangeKind.MOVEMENT, RequestContext.for_user(ADMIN_ID)
        )

        assert result.notification_count == 0
        assert datastore.rows("notifications") == []

    @pytest.mark.asyncio
    async def test_owner_without_profile_gets_in_app_only(self, notification_service, datastore):
        result = await notification_service.notify_on_shipment_change(
            shipment(user_id="ghost-user"), ShipmentChangeKind.STATUS_CHANGED, RequestContext.for_user(ADMIN_ID)
        )

        assert result.notified_user_ids == ["ghost-user"]
        assert result.emails_queued == 0

    @pytest.mark.asyncio
    async def test_in_app_failure_reported_not_raised(self, notification_service, datastore):
        datastore.fail_on("insert", "notifications")

        result = await notification_service.notify_on_shipment_change(
            shipment(), ShipmentChangeKind.STATUS_CHANGED, RequestContext.for_user(ADMIN_ID)
        )

        assert result.failed_paths == [f"in_app:{CLIENT_ID}"]
        assert result.emails_queued == 1

    @pytest.mark.asyncio
    async def test_deep_link_in_email(self, notification_service, email_client):
        await notification_service.send_new_shipment_notifications(shipment())
        await notification_service.emails.drain(timeout=1)

        confirmation = email_client.sent_to(CLIENT_EMAIL)[0]
        assert "https://app.perfectexpress.test/track/PFX-10000001" in confirmation["html"]


class TestNewShipmentPaths:

    @pytest.mark.asyncio
    async def test_failing_path_does_not_stop_others(self, notification_service, datastore):
        notification_service.directory.find_profile_by_email = AsyncMock(side_effect=RuntimeError("lookup down"))

        result = await notification_service.send_new_shipment_notifications(shipment())

        assert result.failed_paths == ["receiver"]
        assert sorted(result.notified_user_ids) == sorted([CLIENT_ID, ADMIN_ID, SECOND_ADMIN_ID])
        assert datastore.rows("notifications", {"user_id": RECEIVER_ID}) == []

    @pytest.mark.asyncio
    async def test_admin_listing_failure(self, notification_service, datastore):
        notification_service.directory.list_admins = AsyncMock(side_effect=RuntimeError("boom"))

        result = await notification_service.send_new_shipment_notifications(shipment())

        assert result.failed_paths == ["admins"]
        assert sorted(result.notified_user_ids) == sorted([CLIENT_ID, RECEIVER_ID])


class TestTicketNotifications:

    @pytest.mark.asyncio
    async def test_admin_reply_notifies_owner(self, notification_service, datastore, email_client):
        t = ticket()
        result = await notification_service.notify_ticket_reply(
            t,
            reply(t.id, sender_type="admin", sender_name="Ops Admin", message="On its way"),
            RequestContext.for_user(ADMIN_ID),
        )
        await notification_service.emails.drain(timeout=1)

        assert result.notified_user_ids == [CLIENT_ID]
        row = datastore.rows("notifications")[0]
        assert row["title"] == "New Support Reply"
        assert row["message"] == f"Agent Ops Admin replied to ticket {t.ticket_number}."
        assert row["link"] == f"/dashboard/tickets/{t.id}"
        assert row["type"] == "ticket_reply"
        assert email_client.sent_to(CLIENT_EMAIL)[0]["subject"] == f"PerfectExpress | New Support Message: {t.ticket_number}"

    @pytest.mark.asyncio
    async def test_admin_reply_on_own_ticket_suppressed(self, notification_service, datastore):
        t = ticket(user_id=ADMIN_ID, email="ops@perfectexpress.com")
        result = await notification_service.notify_ticket_reply(
            t, reply(t.id, sender_type="admin"), RequestContext.for_user(ADMIN_ID)
        )

        assert result.suppressed is True
        assert datastore.rows("notifications") == []

    @pytest.mark.asyncio
    async def test_customer_reply_broadcast_to_admins(self, notification_service, datastore):
        t = ticket()
        result = await notification_service.notify_ticket_reply(
            t, reply(t.id, sender_type="customer"), RequestContext.for_user(CLIENT_ID)
        )

        assert sorted(result.notified_user_ids) == sorted([ADMIN_ID, SECOND_ADMIN_ID])
        titles = {n["title"] for n in datastore.rows("notifications")}
        assert titles == {"Customer Response"}

    @pytest.mark.asyncio
    async def test_guest_ticket_admin_reply_no_in_app(self, notification_service, datastore):
        t = ticket(user_id=None, email="guest@example.com")
        result = await notification_service.notify_ticket_reply(
            t, reply(t.id, sender_type="admin"), RequestContext.for_user(ADMIN_ID)
        )

        assert result.notification_count == 0
        assert datastore.rows("notifications") == []

    @pytest.mark.asyncio
    async def test_ticket_created_alerts_admins(self, notification_service, datastore):
        result = await notification_service.notify_ticket_created(ticket())

        assert result.notification_count == 2
        assert {n["link"] for n in datastore.rows("notifications")} == {"/dashboard?tab=support"}

    @pytest.mark.asyncio
    async def test_status_change_message(self, notification_service, datastore):
        t = ticket(status="in_progress")
        await notification_service.notify_ticket_status_change(t, RequestContext.for_user(ADMIN_ID))

        row = datastore.rows("notifications")[0]
        assert row["title"] == "Ticket Status Update"
        assert row["message"] == f"Ticket {t.ticket_number} status changed to IN PROGRESS."


class TestInAppNotifications:

    @staticmethod
    def _seed(datastore, user_id, count):
        for i in range(count):
            datastore.seed("notifications", {
                "id": f"{user_id}-n{i}",
                "user_id": user_id,
                "type": NotificationType.SYSTEM.value,
                "title": f"n{i}",
                "message": f"message {i}",
                "link": None,
                "is_read": False,
                "created_at": BASE_TIME + timedelta(minutes=i),
            })

    @pytest.mark.asyncio
    async def test_fetch_newest_first(self, notification_service, datastore):
        self._seed(datastore, CLIENT_ID, 3)

        notes = await notification_service.fetch_notifications(RequestContext.for_user(CLIENT_ID))

        assert [n.title for n in notes] == ["n2", "n1", "n0"]

    @pytest.mark.asyncio
    async def test_fetch_limit(self, notification_service, datastore):
        self._seed(datastore, CLIENT_ID, 5)

        notes = await notification_service.fetch_notifications(RequestContext.for_user(CLIENT_ID), limit=2)

        assert len(notes) == 2

    @pytest.mark.asyncio
    async def test_impersonation_reads_target_notifications(self, notification_service, datastore):
        self._seed(datastore, CLIENT_ID, 2)

        notes = await notification_service.fetch_notifications(RequestContext.impersonating(ADMIN_ID, CLIENT_ID))

        assert len(notes) == 2
        assert all(n.user_id == CLIENT_ID for n in notes)

    @pytest.mark.asyncio
    async def test_mark_read_and_counts(self, notification_service, datastore):
        ctx = RequestContext.for_user(CLIENT_ID)
        self._seed(datastore, CLIENT_ID, 3)
        notes = await notification_service.fetch_notifications(ctx)

        assert await notification_service.get_unread_count(ctx) == 3
        assert await notification_service.mark_as_read(notes[0].id, ctx) is True
        assert await notification_service.get_unread_count(ctx) == 2
        assert await notification_service.mark_all_as_read(ctx) == 2
        assert await notification_service.get_unread_count(ctx) == 0

    @pytest.mark.asyncio
    async def test_cannot_mark_someone_elses_notification(self, notification_service, datastore):
        self._seed(datastore, RECEIVER_ID, 1)
        other = await notification_service.fetch_notifications(RequestContext.for_user(RECEIVER_ID))

        with pytest.raises(NotificationNotFoundError):
            await notification_service.mark_as_read(other[0].id, RequestContext.for_user(CLIENT_ID))

    @pytest.mark.asyncio
    async def test_anonymous_rejected(self, notification_service):
        with pytest.raises(NotificationValidationError):
            await notification_service.fetch_notifications(RequestContext.system())

    @pytest.mark.asyncio
    async def test_cleanup_closes_transport(self, notification_service, email_client):
        await notification_service.cleanup()
        assert email_client.closed is True
