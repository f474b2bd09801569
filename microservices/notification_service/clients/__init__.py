"""
Clients module for notification_service

Outbound email transport
"""

from .email_client import LogOnlyEmailClient, ResendEmailClient, create_email_client

__all__ = [
    "ResendEmailClient",
    "LogOnlyEmailClient",
    "create_email_client",
]
