"""
Component Test Fixtures for Account Service API
"""

import pytest
from fastapi.testclient import TestClient

from microservices.account_service import main


@pytest.fixture
def client(datastore, account_service):
    """Create test client with mocked dependencies"""
    main.app.dependency_overrides[main.get_account_service] = lambda: account_service
    main.app.state.datastore = datastore
    try:
        yield TestClient(main.app, raise_server_exceptions=False)
    finally:
        main.app.dependency_overrides = {}
        main.app.state.datastore = None
