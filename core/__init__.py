#!/usr/bin/env python3
"""
Core Module for the PFX logistics microservices

Shared infrastructure used by every service.

COMPONENTS:
    - config/: Modular configuration (infra, email, logging, platform settings)
    - logger.py: Service logger setup
    - datastore.py: Row-oriented datastore contract and errors
    - postgres_client.py: asyncpg implementation of the datastore contract
    - change_feed.py: Realtime row-change subscriptions (LISTEN/NOTIFY)
    - request_context.py: Acting/effective user context (impersonation)
    - auth_dependencies.py: FastAPI identity and role dependencies

USAGE:
    from core.config import settings
    from core.postgres_client import create_datastore

    datastore = create_datastore(settings.infra)
"""

from .datastore import DatastoreError, DatastoreProtocol, UniqueViolationError
from .request_context import RequestContext

__all__ = [
    "DatastoreError",
    "DatastoreProtocol",
    "UniqueViolationError",
    "RequestContext",
]

__version__ = "1.0.0"
