#!/usr/bin/env python3
"""Email transport configuration (Resend)"""
import os
from dataclasses import dataclass
from typing import Optional


def _float(val: str, default: float) -> float:
    try:
        return float(val) if val else default
    except ValueError:
        return default


@dataclass
class EmailConfig:
    """Outbound email settings"""
    resend_api_key: Optional[str] = None
    resend_base_url: str = "https://api.resend.com"
    from_email: str = "noreply@perfectexpress.com"
    timeout_seconds: float = 30.0

    @property
    def enabled(self) -> bool:
        return bool(self.resend_api_key)

    @classmethod
    def from_env(cls) -> 'EmailConfig':
        """Load email config from environment"""
        return cls(
            resend_api_key=os.getenv("RESEND_API_KEY") or None,
            resend_base_url=os.getenv("RESEND_BASE_URL", "https://api.resend.com"),
            from_email=os.getenv("EMAIL_FROM", "noreply@perfectexpress.com"),
            timeout_seconds=_float(os.getenv("EMAIL_TIMEOUT_SECONDS", "30"), 30.0),
        )
