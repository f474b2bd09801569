"""
Account Service Factory

Factory for creating AccountService with real dependencies.
This is the ONLY module that imports concrete implementations.
"""

import logging
from typing import Optional

from core.config import AppConfig, get_settings
from core.datastore import DatastoreProtocol

from .account_repository import AccountRepository
from .account_service import AccountService

logger = logging.getLogger(__name__)


def create_account_service(
    datastore: DatastoreProtocol,
    config: Optional[AppConfig] = None,
) -> AccountService:
    """
    Create AccountService with all real dependencies

    Args:
        datastore: Initialized datastore
        config: Optional platform config (global settings if not provided)

    Returns:
        Fully initialized AccountService instance
    """
    config = config or get_settings()
    repository = AccountRepository(datastore)

    logger.info("AccountService created with real dependencies")
    return AccountService(repository=repository, config=config)


__all__ = ["create_account_service"]
