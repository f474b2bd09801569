"""
Component Test Fixtures for Notification Service API
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from microservices.account_service.account_repository import AccountRepository
from microservices.notification_service import main
from microservices.notification_service.email_dispatcher import EmailDispatcher
from microservices.notification_service.notification_repository import NotificationRepository
from microservices.notification_service.notification_service import NotificationService
from tests.component.mocks import MockEmailClient
from tests.fixtures import BASE_TIME, CLIENT_ID, RECEIVER_ID


def notification_row(notification_id, user_id, title, minutes=0, is_read=False):
    return {
        "id": notification_id,
        "user_id": user_id,
        "type": "shipment_update",
        "title": title,
        "message": f"{title} message",
        "link": "/track/PFX-10000001",
        "is_read": is_read,
        "created_at": BASE_TIME + timedelta(minutes=minutes),
    }


@pytest.fixture
def api_service(datastore, app_config):
    datastore.seed(
        "notifications",
        notification_row("n-1", CLIENT_ID, "Shipment Registered", minutes=0),
        notification_row("n-2", CLIENT_ID, "Shipment Updated", minutes=5),
        notification_row("n-3", CLIENT_ID, "Payment Received", minutes=10, is_read=True),
        notification_row("n-4", RECEIVER_ID, "Incoming Shipment", minutes=1),
    )
    return NotificationService(
        repository=NotificationRepository(datastore),
        directory=AccountRepository(datastore),
        email_dispatcher=EmailDispatcher(MockEmailClient()),
        config=app_config,
    )


@pytest.fixture
def client(datastore, api_service):
    """Create test client with mocked dependencies"""
    main.app.dependency_overrides[main.get_notification_service] = lambda: api_service
    main.app.state.datastore = datastore
    try:
        yield TestClient(main.app, raise_server_exceptions=False)
    finally:
        main.app.dependency_overrides = {}
        main.app.state.datastore = None
