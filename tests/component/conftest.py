"""
Component Test Layer Configuration

Services are built through their real factories on top of the in-memory
datastore; only the email transport is mocked.

Structure:
    tests/component/
    ├── account/        AccountService + API
    ├── core/           Change feed
    ├── notification/   NotificationService, email transport + API
    ├── shipment/       History ledger, ShipmentService + API
    ├── support/        SupportService + API
    └── mocks/          Mock implementations

Usage:
    pytest tests/component -v
    pytest tests/component/shipment -v
"""
import os
import sys

import pytest
import pytest_asyncio

# Set testing environment BEFORE any imports
os.environ["ENV"] = "testing"
os.environ["ENVIRONMENT"] = "testing"

# Add project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from core.config import AppConfig
from microservices.account_service.factory import create_account_service
from microservices.notification_service.factory import create_notification_service
from microservices.shipment_service.factory import create_shipment_service
from microservices.support_service.factory import create_support_service
from tests.component.mocks import InMemoryDatastore, MockEmailClient
from tests.fixtures import default_profile_rows


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_collection_modifyitems(config, items):
    for item in items:
        if "/component/" in str(item.fspath).replace("\\", "/"):
            item.add_marker(pytest.mark.component)


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def app_config() -> AppConfig:
    """Platform config with short timeouts"""
    return AppConfig(
        environment="testing",
        brand_name="PerfectExpress",
        public_app_url="https://app.perfectexpress.test",
        session_timeout_seconds=0.2,
        ledger_conditional_writes=True,
        ledger_max_retries=3,
    )


@pytest.fixture
def datastore() -> InMemoryDatastore:
    """In-memory datastore seeded with two admins, a sender and a receiver"""
    store = InMemoryDatastore()
    store.seed("profiles", *default_profile_rows())
    return store


@pytest.fixture
def email_client() -> MockEmailClient:
    return MockEmailClient()


@pytest_asyncio.fixture
async def notification_service(datastore, email_client, app_config):
    """Notification service; outstanding email sends are drained on teardown"""
    service = create_notification_service(datastore, config=app_config, email_client=email_client)
    yield service
    await service.emails.drain(timeout=1)


@pytest.fixture
def shipment_service(datastore, notification_service, app_config):
    return create_shipment_service(datastore, config=app_config, notifier=notification_service)


@pytest.fixture
def support_service(datastore, notification_service, app_config):
    return create_support_service(datastore, config=app_config, notifier=notification_service)


@pytest.fixture
def account_service(datastore, app_config):
    return create_account_service(datastore, config=app_config)
