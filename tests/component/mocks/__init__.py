"""
Component Test Mocks

Shared mock implementations for component testing.
These mocks replace real I/O dependencies (PostgreSQL, email transport).
"""

from .datastore_mock import InMemoryDatastore
from .email_mock import MockEmailClient

__all__ = [
    'InMemoryDatastore',
    'MockEmailClient',
]
