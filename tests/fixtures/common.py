"""
Common/Shared Fixtures

Base factories used across multiple services.
"""
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional


def make_user_id() -> str:
    """Generate a unique user ID"""
    return f"usr_test_{uuid.uuid4().hex[:12]}"


def make_email(prefix: Optional[str] = None) -> str:
    """Generate a unique email"""
    prefix = prefix or f"test_{uuid.uuid4().hex[:8]}"
    return f"{prefix}@example.com"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def make_timestamp() -> str:
    """Generate current UTC timestamp"""
    return utc_now().isoformat()


def auth_headers(user_id: Optional[str], impersonate: Optional[str] = None) -> Dict[str, str]:
    """Identity headers as forwarded by the gateway"""
    headers = {}
    if user_id:
        headers["X-User-Id"] = user_id
    if impersonate:
        headers["X-Impersonate-User-Id"] = impersonate
    return headers
