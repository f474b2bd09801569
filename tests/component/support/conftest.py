"""
Component Test Fixtures for Support Service API

One seeded ticket owned by the sender, with a single customer message.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from microservices.support_service import main
from microservices.support_service.support_repository import SupportRepository
from microservices.support_service.support_service import SupportService
from tests.fixtures import make_reply_row, make_ticket_row

TICKET_ID = "ticket-0001"
TICKET_NUMBER = "TKT-20000001"


@pytest.fixture
def mock_notifier():
    return AsyncMock()


@pytest.fixture
def api_service(datastore, mock_notifier, app_config):
    datastore.seed("support_tickets", make_ticket_row(ticket_id=TICKET_ID, ticket_number=TICKET_NUMBER))
    datastore.seed("ticket_replies", make_reply_row(TICKET_ID, message="Where is it?"))
    return SupportService(SupportRepository(datastore), mock_notifier, config=app_config)


@pytest.fixture
def client(datastore, api_service):
    """Create test client with mocked dependencies"""
    main.app.dependency_overrides[main.get_support_service] = lambda: api_service
    main.app.state.datastore = datastore
    try:
        yield TestClient(main.app, raise_server_exceptions=False)
    finally:
        main.app.dependency_overrides = {}
        main.app.state.datastore = None
