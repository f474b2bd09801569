"""
Root conftest.py - Global configuration for all test layers.

Test Layers:
    - component/: Service and API tests (in-memory datastore, mocked email)
    - unit/     : Unit tests (pure functions, no I/O)
"""
import os
import sys

# Set testing environment BEFORE any project imports
os.environ.setdefault("ENV", "testing")
os.environ.setdefault("ENVIRONMENT", "testing")

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)


def pytest_configure(config):
    """Configure custom markers"""
    config.addinivalue_line("markers", "unit: pure logic tests, no I/O")
    config.addinivalue_line("markers", "component: service and API tests against in-memory dependencies")
