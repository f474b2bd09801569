#!/usr/bin/env python3
"""Platform configuration

Combines all sub-configs with the application-level settings shared by the
shipment, notification, support and account services.
"""
import os
from dataclasses import dataclass, field
from typing import Dict

from .email_config import EmailConfig
from .infra_config import InfraConfig
from .logging_config import LoggingConfig


def _bool(val: str) -> bool:
    return val.lower() == "true"


def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default


def _float(val: str, default: float) -> float:
    try:
        return float(val) if val else default
    except ValueError:
        return default


DEFAULT_SERVICE_PORTS: Dict[str, int] = {
    "account_service": 8202,
    "notification_service": 8206,
    "shipment_service": 8230,
    "support_service": 8231,
}


@dataclass
class AppConfig:
    """Main platform configuration"""

    environment: str = "development"
    debug: bool = False

    # Branding and deep links
    brand_name: str = "PerfectExpress"
    public_app_url: str = ""

    # Bounded waits around session/profile resolution
    session_timeout_seconds: float = 8.0

    # History ledger write strategy
    ledger_conditional_writes: bool = True
    ledger_max_retries: int = 3

    service_ports: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_SERVICE_PORTS))

    infra: InfraConfig = field(default_factory=InfraConfig)
    email: EmailConfig = field(default_factory=EmailConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def service_port(self, service_name: str) -> int:
        env_key = f"{service_name.upper()}_PORT"
        return _int(os.getenv(env_key, ""), self.service_ports.get(service_name, 8000))

    def deep_link(self, path: str) -> str:
        """Prefix an in-app path with the public app URL, if configured"""
        if not self.public_app_url:
            return path
        return f"{self.public_app_url.rstrip('/')}{path}"

    @classmethod
    def from_env(cls) -> 'AppConfig':
        """Load platform config from environment"""
        env = os.getenv("ENV") or os.getenv("ENVIRONMENT", "development")
        return cls(
            environment=env,
            debug=_bool(os.getenv("DEBUG", "false")),
            brand_name=os.getenv("BRAND_NAME", "PerfectExpress"),
            public_app_url=os.getenv("PUBLIC_APP_URL", ""),
            session_timeout_seconds=_float(os.getenv("SESSION_TIMEOUT_SECONDS", "8"), 8.0),
            ledger_conditional_writes=_bool(os.getenv("LEDGER_CONDITIONAL_WRITES", "true")),
            ledger_max_retries=_int(os.getenv("LEDGER_MAX_RETRIES", "3"), 3),
            infra=InfraConfig.from_env(),
            email=EmailConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )
