"""
Component Test Fixtures for Shipment Service API

The FastAPI app is exercised without its lifespan: the service dependency is
overridden and the in-memory datastore is attached to app.state for role
checks. Notifications go to an AsyncMock.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from microservices.shipment_service import main
from microservices.shipment_service.shipment_repository import ShipmentRepository
from microservices.shipment_service.shipment_service import ShipmentService
from tests.fixtures import make_shipment_row


@pytest.fixture
def mock_notifier():
    return AsyncMock()


@pytest.fixture
def api_service(datastore, mock_notifier, app_config):
    datastore.seed("shipments", make_shipment_row(tracking_number="PFX-10000001"))
    return ShipmentService(ShipmentRepository(datastore), mock_notifier, config=app_config)


@pytest.fixture
def client(datastore, api_service):
    """Create test client with mocked dependencies"""
    main.app.dependency_overrides[main.get_shipment_service] = lambda: api_service
    main.app.state.datastore = datastore
    try:
        yield TestClient(main.app, raise_server_exceptions=False)
    finally:
        main.app.dependency_overrides = {}
        main.app.state.datastore = None
