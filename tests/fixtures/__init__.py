"""
Shared Test Fixtures

Row factories and well-known identities used across test layers.

Structure:
    - common.py: ID generators, timestamps
    - logistics_fixtures.py: Profile, shipment and ticket row factories
"""

from .common import (
    auth_headers,
    make_user_id,
    make_email,
    make_timestamp,
    utc_now,
)

from .logistics_fixtures import (
    BASE_TIME,
    ADMIN_ID,
    SECOND_ADMIN_ID,
    CLIENT_ID,
    RECEIVER_ID,
    ADMIN_EMAIL,
    SECOND_ADMIN_EMAIL,
    CLIENT_EMAIL,
    RECEIVER_EMAIL,
    make_profile_row,
    default_profile_rows,
    make_history_entry,
    make_shipment_row,
    make_ticket_row,
    make_reply_row,
)

__all__ = [
    "auth_headers",
    "make_user_id",
    "make_email",
    "make_timestamp",
    "utc_now",
    "BASE_TIME",
    "ADMIN_ID",
    "SECOND_ADMIN_ID",
    "CLIENT_ID",
    "RECEIVER_ID",
    "ADMIN_EMAIL",
    "SECOND_ADMIN_EMAIL",
    "CLIENT_EMAIL",
    "RECEIVER_EMAIL",
    "make_profile_row",
    "default_profile_rows",
    "make_history_entry",
    "make_shipment_row",
    "make_ticket_row",
    "make_reply_row",
]
